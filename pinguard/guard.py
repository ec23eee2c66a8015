"""
Pointer pinning guard.

A PtrGuard keeps a Python buffer at a fixed address, alive, for an
interval the caller controls, so that foreign code may hold and use the
address after the call that handed it over has returned.

Usage::

    buf = bytearray(4096)
    guard = PtrGuard(buf)               # blocks until the pin is established
    guard.store((args, "buffer"))       # publish the address into foreign memory
    try:
        lib.submit_write(ctypes.byref(args))
        lib.wait_for_completion()
    finally:
        guard.release()                 # zero the slot, unpin, join the task

Or, with the same guarantees on every exit path::

    with pinned(buf, (args, "buffer")):
        lib.submit_write(ctypes.byref(args))
        lib.wait_for_completion()

Protocol
--------
Two threads take part: the owner (the caller) and one pin thread.

    (1) pin thread -> owner   "established"  constructor returns after this
    (2) owner -> pin thread   "terminate"    release() sends this
    (3) pin thread -> owner   "unwound"      release() returns after this

Only the owner writes the address and the slot, so no lock guards them.
release() zeroes both before sending terminate: a foreign reader sees
either the valid address or 0. Keeping foreign code from reading the
slot after release() has started is the caller's job.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ._gate import SignalGate
from ._logging import scoped_logger
from ._pin import PinTask
from ._retain import BufferRetainer, Retainer, address_of
from ._slot import ForeignSlot, as_slot
from .exceptions import DoubleStoreError

__all__ = ["GuardState", "PtrGuard", "pinned"]

log = scoped_logger("pin")


class GuardState(enum.Enum):
    """Lifecycle of a PtrGuard. RELEASED is terminal."""

    ARMED = "armed"
    PINNED = "pinned"
    RELEASED = "released"


class PtrGuard:
    """
    Pins one buffer and optionally publishes its address to one foreign slot.

    Guards are single-use and single-owner: store() and release() must be
    called from the thread that owns the guard.

    Args:
        target: Object whose memory is pinned. Any writable C-contiguous
            buffer (``bytearray``, ``array.array``, NumPy arrays), ``bytes``,
            or a ctypes view over borrowed memory (``from_buffer``,
            ``from_address``). ctypes instances that own their memory are
            rejected because ``ctypes.resize`` can move them.
        retainer: Strategy that keeps the memory manager away from the
            target. Defaults to BufferRetainer.

    Raises:
        InvalidAddressError: If ``target`` has no pinnable memory.
    """

    def __init__(self, target: Any, *, retainer: Retainer | None = None):
        self._state = GuardState.ARMED
        self._address, self._size = address_of(target)
        self._slot: ForeignSlot | None = None
        self._bound = False

        # Both gates exist, armed, before the pin thread can touch either.
        self._terminate = SignalGate("terminate")
        self._established = SignalGate("established")
        self._task = PinTask(
            target,
            retainer if retainer is not None else BufferRetainer(),
            established=self._established,
            terminate=self._terminate,
        )
        self._task.start()
        self._state = GuardState.PINNED

        log.debug(
            "Pin established",
            extra={"guard": self._task.id, "address": self._address, "size": self._size},
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def id(self) -> int:
        """Process-unique guard number, also used in the pin thread's name."""
        return self._task.id

    @property
    def address(self) -> int:
        """Pinned address, or 0 once release() has started."""
        return self._address

    @property
    def size(self) -> int:
        """Byte length of the pinned region."""
        return self._size

    @property
    def slot(self) -> ForeignSlot | None:
        """The currently bound foreign slot, if any."""
        return self._slot

    @property
    def state(self) -> GuardState:
        return self._state

    # =========================================================================
    # Store / Release
    # =========================================================================

    def store(self, slot: Any) -> PtrGuard:
        """
        Write the pinned address into a foreign slot.

        ``slot`` is a ForeignSlot, an integer address, a ctypes instance,
        or a ``(struct, "field")`` pair. The slot is zeroed again by
        release().

        A guard can be bound once. Storing into a guard that was already
        released, and never bound, does nothing. A second store() after
        release still raises DoubleStoreError: this case deliberately
        overrides the "released means no-op" rule.

        Returns:
            The guard, for chaining.

        Raises:
            DoubleStoreError: If store() was already called on this guard.
            InvalidSlotError: If the slot is null, misaligned or too small.
        """
        if self._bound:
            log.error(
                "store() called twice on the same guard",
                extra={"guard": self._task.id, "slot": self._slot_address()},
            )
            raise DoubleStoreError(details={"guard": self._task.id})
        if self._address == 0:
            return self

        cell = as_slot(slot)
        cell.write(self._address)
        self._slot = cell
        self._bound = True

        log.debug(
            "Address stored in foreign slot",
            extra={"guard": self._task.id, "address": self._address, "slot": cell.address},
        )
        return self

    def release(self) -> None:
        """
        Unpin the buffer and zero the foreign slot, if one is bound.

        Blocks until the pin thread has dropped its retention and exited.
        Calling release() again is a no-op.
        """
        if self._address == 0:
            return

        address, self._address = self._address, 0
        if self._slot is not None:
            self._slot.write(0)
            self._slot = None

        try:
            self._task.stop()
        finally:
            self._state = GuardState.RELEASED

        log.debug("Pin released", extra={"guard": self._task.id, "address": address})

    def _slot_address(self) -> int | None:
        return self._slot.address if self._slot is not None else None

    # =========================================================================
    # Context Manager
    # =========================================================================

    def __enter__(self) -> PtrGuard:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"PtrGuard(id={self._task.id}, address=0x{self._address:x}, "
            f"state={self._state.value})"
        )


@contextmanager
def pinned(
    target: Any, slot: Any = None, *, retainer: Retainer | None = None
) -> Iterator[PtrGuard]:
    """
    Pin ``target`` for the duration of a ``with`` block.

    When ``slot`` is given the address is stored into it on entry. The
    guard is released on every exit path, including exceptions.

    Example:
        >>> args = WriteArgs()
        >>> with pinned(buf, (args, "buffer")) as guard:
        ...     lib.submit_write(ctypes.byref(args))
    """
    guard = PtrGuard(target, retainer=retainer)
    try:
        if slot is not None:
            guard.store(slot)
        yield guard
    finally:
        guard.release()
