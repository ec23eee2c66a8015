"""
Global pytest fixtures for pinguard tests.

This module provides:
- Fault handling for native crashes (a bad slot write segfaults)
- Live pin-thread enumeration
- An instrumented retainer that records retain/release order
"""

import ctypes
import faulthandler
import gc
import threading

import pytest

from pinguard import PIN_THREAD_PREFIX, BufferRetainer

# Enable faulthandler to trace native crashes (segfaults)
faulthandler.enable()


# =============================================================================
# Thread Fixtures
# =============================================================================


def live_pin_threads() -> list[threading.Thread]:
    """Return every pin thread that is still running."""
    return [t for t in threading.enumerate() if t.name.startswith(PIN_THREAD_PREFIX)]


@pytest.fixture
def pin_threads():
    """Callable returning live pin threads; asserts none leak from the test."""
    before = {t.ident for t in live_pin_threads()}
    yield live_pin_threads
    leaked = [t for t in live_pin_threads() if t.ident not in before]
    assert not leaked, f"{len(leaked)} pin threads still alive: {[t.name for t in leaked]}"


# =============================================================================
# Retainer Fixtures
# =============================================================================


class RecordingRetainer:
    """
    BufferRetainer that records each retain/release.

    ``watch`` is an optional ctypes cell whose value is sampled at
    release time, to check slot zeroing happens before unpinning.
    """

    def __init__(self, watch=None):
        self.events: list[tuple[str, str]] = []
        self.watch = watch
        self.watched_at_release: list[int | None] = []
        self._inner = BufferRetainer()
        self._lock = threading.Lock()

    def retain(self, target):
        retention = self._inner.retain(target)
        with self._lock:
            self.events.append(("retain", threading.current_thread().name))
        recorder = self

        class _Recorded:
            def release(self):
                if recorder.watch is not None:
                    recorder.watched_at_release.append(recorder.watch.value)
                retention.release()
                with recorder._lock:
                    recorder.events.append(("release", threading.current_thread().name))

        return _Recorded()

    @property
    def retained(self) -> int:
        kinds = [kind for kind, _ in self.events]
        return kinds.count("retain") - kinds.count("release")


@pytest.fixture
def recording_retainer():
    return RecordingRetainer()


class FailingRetainer:
    """Retainer whose retain() or release() raises."""

    def __init__(self, on: str = "retain"):
        self.on = on

    def retain(self, target):
        if self.on == "retain":
            raise RuntimeError("retain refused")
        failing = self

        class _Failing:
            def release(self):
                if failing.on == "release":
                    raise RuntimeError("release refused")

        return _Failing()


# =============================================================================
# Memory Fixtures
# =============================================================================


@pytest.fixture
def foreign_cell():
    """An 8-byte zero-initialised cell standing in for foreign memory."""
    return ctypes.c_uint64(0)


@pytest.fixture
def force_gc():
    def collect():
        gc.collect()
        gc.collect()
        gc.collect()

    return collect


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "memory: marks memory/leak detection tests")
