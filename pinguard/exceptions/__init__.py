"""
Pinguard exceptions.

This module defines the exception hierarchy for pinguard:

    PinGuardError (base)
    ├── ContractViolationError - Caller misused a guard
    │   ├── DoubleStoreError - Store called on an already-bound guard
    │   ├── InvalidAddressError - Target has no pinnable memory
    │   └── InvalidSlotError - Foreign slot is null, misaligned or too small
    └── StateError - Invalid object state errors
"""

from .exceptions import (
    ContractViolationError,
    DoubleStoreError,
    InvalidAddressError,
    InvalidSlotError,
    PinGuardError,
    StateError,
)

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
