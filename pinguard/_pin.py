"""
Background pinning task.

One daemon thread per guard. It retains the target, reports
"established", parks until "terminate", then drops the retention and
reports "unwound". The thread has no other exit: a pin ends through the
guard's release(), or through a constructor that fails before returning.
"""

from __future__ import annotations

import itertools
import threading
from typing import Any

from ._gate import SignalGate
from ._retain import Retainer

__all__ = ["PIN_THREAD_PREFIX", "PinTask"]

PIN_THREAD_PREFIX = "pinguard-pin-"

_task_ids = itertools.count(1)


def _pin_until_release(
    target: Any,
    retainer: Retainer,
    established: SignalGate,
    terminate: SignalGate,
    unwound: SignalGate,
) -> None:
    try:
        retention = retainer.retain(target)
    except BaseException as exc:
        established.fail(exc)
        return
    established.fire()  # -->(1)
    terminate.wait()  # <--(2)

    try:
        retention.release()
    except BaseException as exc:
        unwound.fail(exc)
    else:
        unwound.fire()  # -->(3)


class PinTask:
    """
    Thread that holds one retention for the lifetime of a guard.

    The established and terminate gates belong to the guard; the task
    owns the unwound gate that answers terminate.
    """

    def __init__(
        self,
        target: Any,
        retainer: Retainer,
        *,
        established: SignalGate,
        terminate: SignalGate,
    ):
        self.id = next(_task_ids)
        self.established = established
        self.terminate = terminate
        self.unwound = SignalGate("unwound")
        # Daemon so that a leaked pin does not keep the interpreter alive.
        self._thread = threading.Thread(
            target=_pin_until_release,
            args=(target, retainer, established, terminate, self.unwound),
            name=f"{PIN_THREAD_PREFIX}{self.id}",
            daemon=True,
        )

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        """Start the thread and block until the pin is established."""
        try:
            self._thread.start()
            self.established.wait()  # <--(1)
        except BaseException:
            # Retain failed, or start/wait was interrupted. Firing terminate
            # lets a thread that did (or still will) retain unwind at once.
            self.terminate.fire()
            if self._thread.ident is not None:
                self._thread.join()
            raise

    def stop(self) -> None:
        """Signal terminate and block until the thread has fully unwound."""
        self.terminate.fire()  # -->(2)
        try:
            self.unwound.wait()  # <--(3)
        finally:
            self._thread.join()
