"""
Address resolution and the retain primitive.

CPython never moves a live object, but it does reclaim unreferenced
memory and it does reallocate a resizable buffer such as ``bytearray``.
Holding a strong reference stops the first, and holding a buffer export
(a ``memoryview``) makes CPython refuse the second with ``BufferError``.
BufferRetainer does both for as long as the retention is held.
"""

from __future__ import annotations

import ctypes
from typing import Any, Protocol

from .exceptions import InvalidAddressError

__all__ = [
    "BufferRetainer",
    "NullRetainer",
    "Retainer",
    "Retention",
    "address_of",
]

_CTYPES_DATA = (ctypes._SimpleCData, ctypes.Array, ctypes.Structure, ctypes.Union)


class Retention(Protocol):
    """Handle for one retained object; release() ends the retention."""

    def release(self) -> None: ...


class Retainer(Protocol):
    """Strategy that keeps the memory manager away from a pinned object."""

    def retain(self, target: Any) -> Retention: ...


def address_of(target: Any) -> tuple[int, int]:
    """
    Resolve the base address and byte size of a pinnable object.

    Accepts ``bytes``, any object exporting a writable, C-contiguous,
    non-empty buffer, and ctypes instances that borrow their memory
    (``from_buffer`` or ``from_address`` views). A ctypes instance that
    owns its memory is rejected: ``ctypes.resize`` can move it and no
    buffer export prevents that.

    Raises:
        InvalidAddressError: If ``target`` has no pinnable memory.
    """
    if target is None or isinstance(target, (bool, int)):
        raise InvalidAddressError(
            "pin target must be a buffer object, not a raw address",
            details={"type": type(target).__name__},
        )

    if isinstance(target, _CTYPES_DATA):
        size = ctypes.sizeof(target)
        if size == 0:
            raise InvalidAddressError("pin target is empty", details={"size": 0})
        if target._b_needsfree_:
            raise InvalidAddressError(
                "ctypes pin target owns its memory and can be moved by ctypes.resize; "
                "pin the buffer behind a from_buffer() view instead",
                details={"type": type(target).__name__},
            )
        return ctypes.addressof(target), size

    if isinstance(target, bytes):
        if not target:
            raise InvalidAddressError("pin target is empty", details={"size": 0})
        # c_char_p borrows the bytes object's internal storage
        address = ctypes.cast(ctypes.c_char_p(target), ctypes.c_void_p).value
        return address, len(target)

    try:
        view = memoryview(target)
    except TypeError:
        raise InvalidAddressError(
            "pin target does not support the buffer protocol",
            details={"type": type(target).__name__},
        ) from None

    with view:
        if view.nbytes == 0:
            raise InvalidAddressError("pin target is empty", details={"size": 0})
        if view.readonly:
            raise InvalidAddressError(
                "pin target buffer is read-only",
                details={"type": type(target).__name__},
            )
        if not view.c_contiguous:
            raise InvalidAddressError(
                "pin target buffer is not C-contiguous",
                details={"type": type(target).__name__},
            )
        flat = view.cast("B")
        with flat:
            cell = ctypes.c_char.from_buffer(flat)
            address = ctypes.addressof(cell)
            # The ctypes view holds an export on ``flat``; drop it before release.
            del cell
        return address, view.nbytes


class _BufferRetention:
    __slots__ = ("_target", "_view")

    def __init__(self, target: Any, view: memoryview):
        self._target = target
        self._view = view

    def release(self) -> None:
        view, self._view = self._view, None
        self._target = None
        if view is not None:
            view.release()


class BufferRetainer:
    """Pins by holding a reference and a buffer export on the target."""

    def retain(self, target: Any) -> Retention:
        return _BufferRetention(target, memoryview(target))


class _NullRetention:
    __slots__ = ()

    def release(self) -> None:
        pass


class NullRetainer:
    """
    Retainer that does nothing.

    For memory the caller already keeps alive and fixed (e.g. memory
    obtained from a foreign allocator). The guard then only runs the
    Store/Release publishing protocol.
    """

    def retain(self, target: Any) -> Retention:
        return _NullRetention()
