"""
One-shot signal gates.

A gate starts armed: every wait() blocks. It makes exactly one
transition, either fire() (waiters wake normally) or fail(exc) (waiters
wake and re-raise exc). There is no reset.
"""

from __future__ import annotations

from concurrent.futures import Future, InvalidStateError

from .exceptions import StateError

__all__ = ["SignalGate"]


class SignalGate:
    """Single-use rendezvous between two threads."""

    __slots__ = ("name", "_future")

    def __init__(self, name: str):
        self.name = name
        self._future: Future[None] = Future()

    def __repr__(self) -> str:
        state = "fired" if self.fired else "armed"
        return f"SignalGate({self.name!r}, {state})"

    @property
    def fired(self) -> bool:
        """True once the gate has been fired or failed."""
        return self._future.done()

    def fire(self) -> None:
        """Open the gate. Raises StateError if it already transitioned."""
        try:
            self._future.set_result(None)
        except InvalidStateError:
            raise StateError(
                f"gate {self.name!r} already fired",
                code="GATE_ALREADY_FIRED",
                details={"gate": self.name},
            ) from None

    def fail(self, exc: BaseException) -> None:
        """Open the gate with an error that every waiter re-raises."""
        try:
            self._future.set_exception(exc)
        except InvalidStateError:
            raise StateError(
                f"gate {self.name!r} already fired",
                code="GATE_ALREADY_FIRED",
                details={"gate": self.name},
            ) from None

    def wait(self, timeout: float | None = None) -> None:
        """
        Block until the gate transitions.

        Raises the exception passed to fail(), or
        concurrent.futures.TimeoutError when ``timeout`` elapses first.
        """
        self._future.result(timeout)
