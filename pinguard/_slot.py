"""
Foreign memory cells that receive a pinned address.

A ForeignSlot is a pointer-width cell owned by foreign code (or by a
ctypes object standing in for it). The guard writes the pinned address
into it on store() and zeroes it on release().
"""

from __future__ import annotations

import ctypes
from typing import Any

from .exceptions import InvalidSlotError

__all__ = ["POINTER_SIZE", "ForeignSlot", "as_slot", "field_slot"]

POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)

# Slots are read and written as c_size_t, which must be exactly pointer-wide.
if ctypes.sizeof(ctypes.c_size_t) != POINTER_SIZE:
    raise ImportError(
        f"pinguard requires sizeof(size_t) == sizeof(void*), "
        f"got {ctypes.sizeof(ctypes.c_size_t)} and {POINTER_SIZE}"
    )


class ForeignSlot:
    """
    A pointer-width, pointer-aligned cell at a raw address.

    Args:
        address: Address of the cell. Must be non-null and aligned to
            POINTER_SIZE.
        owner: Optional object that owns the cell's memory. It is kept
            alive for as long as the slot is.

    Raises:
        InvalidSlotError: If the address is null or misaligned.
    """

    __slots__ = ("_address", "_cell", "_owner")

    def __init__(self, address: int, *, owner: Any = None):
        if not isinstance(address, int) or isinstance(address, bool):
            raise InvalidSlotError(
                "slot address must be an integer",
                details={"type": type(address).__name__},
            )
        if address == 0:
            raise InvalidSlotError("slot address is null", details={"slot": 0})
        if address % POINTER_SIZE:
            raise InvalidSlotError(
                f"slot address 0x{address:x} is not {POINTER_SIZE}-byte aligned",
                details={"slot": address, "alignment": POINTER_SIZE},
            )
        self._address = address
        self._owner = owner
        self._cell = ctypes.c_size_t.from_address(address)

    @classmethod
    def from_ctypes(cls, obj: Any) -> ForeignSlot:
        """Use the storage of a ctypes instance (e.g. ``c_void_p()``) as the slot."""
        size = ctypes.sizeof(obj)
        if size < POINTER_SIZE:
            raise InvalidSlotError(
                f"slot of {size} bytes cannot hold a pointer",
                details={"size": size, "required": POINTER_SIZE},
            )
        return cls(ctypes.addressof(obj), owner=obj)

    @property
    def address(self) -> int:
        return self._address

    def read(self) -> int:
        return self._cell.value

    def write(self, value: int) -> None:
        self._cell.value = value

    def __repr__(self) -> str:
        return f"ForeignSlot(0x{self._address:x})"


def field_slot(struct: ctypes.Structure | ctypes.Union, name: str) -> ForeignSlot:
    """
    Slot for one field of a ctypes structure, such as a buffer pointer
    argument that foreign code will read later.
    """
    descriptor = getattr(type(struct), name, None)
    if not hasattr(descriptor, "offset"):
        raise InvalidSlotError(
            f"{type(struct).__name__} has no field {name!r}",
            details={"field": name},
        )
    if descriptor.size < POINTER_SIZE:
        raise InvalidSlotError(
            f"field {name!r} of {descriptor.size} bytes cannot hold a pointer",
            details={"field": name, "size": descriptor.size, "required": POINTER_SIZE},
        )
    return ForeignSlot(ctypes.addressof(struct) + descriptor.offset, owner=struct)


def as_slot(target: Any) -> ForeignSlot:
    """
    Normalise the accepted slot spellings to a ForeignSlot.

    Accepts a ForeignSlot, an integer address, a ctypes instance, or a
    ``(struct, "field")`` pair.
    """
    if isinstance(target, ForeignSlot):
        return target
    if isinstance(target, tuple) and len(target) == 2:
        return field_slot(*target)
    if isinstance(target, (ctypes._SimpleCData, ctypes.Array, ctypes.Structure, ctypes.Union)):
        return ForeignSlot.from_ctypes(target)
    return ForeignSlot(target)
