"""
Concurrent guard stress tests.

Many independent guards cycling construct -> store -> release at once
must neither deadlock nor leak state or threads between guards.
"""

import ctypes
from concurrent.futures import ThreadPoolExecutor

import pytest

from pinguard import GuardState, PtrGuard
from tests.conftest import live_pin_threads


def _cycle(i: int) -> tuple[int, int, int, int, GuardState]:
    buf = bytearray(i.to_bytes(8, "little") * 2)
    cell = ctypes.c_uint64(0)

    guard = PtrGuard(buf)
    address = guard.address
    guard.store(cell)
    stored = cell.value
    guard.release()

    # The buffer content is untouched by the pin cycle.
    assert int.from_bytes(buf[:8], "little") == i
    return address, stored, cell.value, guard.address, guard.state


@pytest.mark.memory
class TestConcurrentGuards:
    """N guards in flight across a worker pool."""

    def test_thousand_concurrent_guards(self, pin_threads):
        with ThreadPoolExecutor(max_workers=32) as pool:
            results = list(pool.map(_cycle, range(1000)))

        assert len(results) == 1000
        for address, stored, after, final_address, state in results:
            assert address != 0
            assert stored == address
            assert after == 0
            assert final_address == 0
            assert state is GuardState.RELEASED

        assert live_pin_threads() == []

    def test_many_guards_alive_at_once(self, pin_threads):
        buffers = [bytearray(16) for _ in range(200)]
        cells = [ctypes.c_uint64(0) for _ in range(200)]
        guards = [PtrGuard(b).store(c) for b, c in zip(buffers, cells)]

        assert len(live_pin_threads()) >= 200
        assert len({g.address for g in guards}) == 200
        for guard, cell in zip(guards, cells):
            assert cell.value == guard.address

        # Releasing every other guard leaves the rest untouched.
        for guard in guards[::2]:
            guard.release()
        for i, (guard, cell) in enumerate(zip(guards, cells)):
            if i % 2:
                assert cell.value == guard.address
                assert guard.state is GuardState.PINNED
            else:
                assert cell.value == 0

        for guard in guards[1::2]:
            guard.release()
        assert all(c.value == 0 for c in cells)

    @pytest.mark.slow
    def test_sequential_cycles_do_not_accumulate_threads(self):
        for i in range(5000):
            _cycle(i)

        assert live_pin_threads() == []
