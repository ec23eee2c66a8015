"""
Pinguard exceptions.

This module defines the exception hierarchy for pinguard:

    PinGuardError (base)
    ├── ContractViolationError - Caller misused a guard (a bug, never retried)
    │   ├── DoubleStoreError - Store called on an already-bound guard
    │   ├── InvalidAddressError - Target has no pinnable memory
    │   └── InvalidSlotError - Foreign slot is null, misaligned or too small
    └── StateError - Invalid object state errors (e.g. a gate fired twice)

Usage:
    try:
        guard.store(slot)
    except pinguard.DoubleStoreError as e:
        print(f"Error {e.code}: {e}")
        print(f"Details: {e.details}")

Contract violations are loud on purpose. Pinguard never catches them itself,
and callers should treat them like a failed assertion rather than a
recoverable condition.
"""

from typing import Any

__all__ = [
    # Base
    "PinGuardError",
    # Contract
    "ContractViolationError",
    "DoubleStoreError",
    "InvalidAddressError",
    "InvalidSlotError",
    # State
    "StateError",
]


class PinGuardError(Exception):
    """
    Base exception for all pinguard errors.

    Attributes
    ----------
    message : str
        Human-readable error description.
    code : str
        Stable, string-based error code (e.g., "DOUBLE_STORE").
        Use this for programmatic error handling.
    details : dict[str, Any]
        Structured context (e.g., {"guard": 3, "slot": 140234...}).
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, code={self.code!r})"


# =============================================================================
# Contract Violations
# =============================================================================


class ContractViolationError(PinGuardError):
    """
    A collaborator broke the guard's usage contract.

    These errors indicate a bug at the call site. They are raised
    immediately and are never converted into a soft failure.
    """

    def __init__(
        self,
        message: str,
        code: str = "CONTRACT_VIOLATION",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class DoubleStoreError(ContractViolationError):
    """
    Store was called on a guard that has already been bound to a slot.

    Exactly one foreign location may ever receive a pin's address, so
    that there is never any doubt about which cell Release must zero.
    """

    def __init__(
        self,
        message: str | None = None,
        code: str = "DOUBLE_STORE",
        details: dict[str, Any] | None = None,
    ):
        if message is None:
            message = "store() called twice on the same guard"
        super().__init__(message, code, details)


class InvalidAddressError(ContractViolationError, ValueError):
    """
    The pin target does not expose pinnable memory.

    Raised for None, bare integers, objects without the buffer protocol,
    empty buffers, read-only buffers other than ``bytes``, and
    non-contiguous buffers.
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_ADDRESS",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class InvalidSlotError(ContractViolationError, ValueError):
    """The foreign slot is null, not pointer-aligned, or smaller than a pointer."""

    def __init__(
        self,
        message: str,
        code: str = "INVALID_SLOT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


# =============================================================================
# State Errors
# =============================================================================


class StateError(PinGuardError, RuntimeError):
    """
    Invalid object state.

    Raised when a one-shot primitive is driven through a transition it
    has already made, such as firing a signal gate a second time.
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_STATE",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
