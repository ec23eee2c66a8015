"""
Pinguard - pin Python buffers for foreign code.

Foreign code sometimes keeps a pointer it was given and uses it after the
call that handed it over has returned (asynchronous I/O, completion
queues, deferred writes). Pinguard keeps the buffer behind that pointer
alive and at a fixed address until you say otherwise, and can publish the
address into a foreign memory cell that it zeroes again on release.

Quick Start
-----------

    >>> import ctypes
    >>> from pinguard import PtrGuard
    >>>
    >>> buf = bytearray(16)
    >>> slot = ctypes.c_void_p()
    >>> guard = PtrGuard(buf).store(slot)
    >>> slot.value == guard.address
    True
    >>> guard.release()
    >>> slot.value is None   # zeroed
    True

Context manager form (release on every exit path):

    >>> from pinguard import pinned
    >>> with pinned(buf, slot) as guard:
    ...     lib.start_async_write(slot)
    ...     lib.wait()


Core Classes
------------

- `PtrGuard` - One pin, from establishment through release
- `pinned` - Context manager around PtrGuard
- `ForeignSlot` / `field_slot` - Foreign pointer cells that receive the address
- `BufferRetainer` / `NullRetainer` - How the target is kept in place
- `SignalGate` - The one-shot gate used for the pin handshake

Errors
------

Misuse raises a `ContractViolationError` subclass (`DoubleStoreError`,
`InvalidAddressError`, `InvalidSlotError`). These mark bugs at the call
site and are never retried or suppressed by pinguard.
"""

from ._gate import SignalGate
from ._logging import setup_logging
from ._pin import PIN_THREAD_PREFIX
from ._retain import BufferRetainer, NullRetainer, Retainer, Retention, address_of
from ._slot import POINTER_SIZE, ForeignSlot, as_slot, field_slot
from .exceptions import (
    ContractViolationError,
    DoubleStoreError,
    InvalidAddressError,
    InvalidSlotError,
    PinGuardError,
    StateError,
)
from .guard import GuardState, PtrGuard, pinned

__all__ = [
    # Guard
    "PtrGuard",
    "GuardState",
    "pinned",
    # Foreign slots
    "ForeignSlot",
    "field_slot",
    "as_slot",
    "POINTER_SIZE",
    # Retention
    "Retainer",
    "Retention",
    "BufferRetainer",
    "NullRetainer",
    "address_of",
    # Synchronization
    "SignalGate",
    "PIN_THREAD_PREFIX",
    # Logging
    "setup_logging",
    # Errors
    "PinGuardError",
    "ContractViolationError",
    "DoubleStoreError",
    "InvalidAddressError",
    "InvalidSlotError",
    "StateError",
]
