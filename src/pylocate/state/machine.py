"""Per-node locate-cycle state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

_logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], None]


class LocateState(StrEnum):
    IDLE = "idle"
    AWAITING_SCAN = "awaiting_scan"
    AWAITING_GEOLOCATION = "awaiting_geolocation"
    AWAITING_PLACE = "awaiting_place"
    AWAITING_TIMEZONE = "awaiting_timezone"
    DONE = "done"
    FAILED = "failed"


_TERMINAL = frozenset({LocateState.DONE, LocateState.FAILED})


@dataclass
class CycleState:
    """Explicit state for the single in-flight locate cycle of a node.

    ``begin`` is the at-most-one guard: it refuses to start while a cycle
    is in flight. ``finish`` passes through ``DONE``/``FAILED`` back to
    ``IDLE`` and hands the caller the callbacks to fire; the stored
    callback is cleared first, so a callback that calls ``locate()``
    again starts a fresh cycle instead of being re-entered.
    """

    state: LocateState = LocateState.IDLE
    last_error: str | None = None
    cycles: int = 0
    _on_complete: CompletionCallback | None = None
    _waiters: list[CompletionCallback] = field(default_factory=list)

    @property
    def is_idle(self) -> bool:
        return self.state == LocateState.IDLE

    def begin(self, state: LocateState, on_complete: CompletionCallback | None) -> bool:
        """Start a cycle in *state*; ``False`` (and no change) if one is in flight."""
        if not self.is_idle:
            return False
        if state in _TERMINAL or state == LocateState.IDLE:
            raise ValueError(f"cannot begin a cycle in state {state}")
        self.cycles += 1
        self.state = state
        self.last_error = None
        self._on_complete = on_complete
        _logger.debug("Cycle %d started in state=%s", self.cycles, state)
        return True

    def advance(self, state: LocateState) -> None:
        """Move an in-flight cycle to the next ``AWAITING_*`` state."""
        if self.is_idle:
            raise RuntimeError(f"no cycle in flight (advance to {state})")
        _logger.debug("Cycle %d: %s -> %s", self.cycles, self.state, state)
        self.state = state

    def add_waiter(self, callback: CompletionCallback) -> None:
        """Fire *callback* when the in-flight cycle ends, alongside ``on_complete``."""
        self._waiters.append(callback)

    def clear_error(self) -> None:
        """Forget the last cycle's error once a newer result has arrived."""
        self.last_error = None

    def finish(self, error: str | None = None) -> list[CompletionCallback]:
        """End the cycle and return the callbacks to fire, in order."""
        final = LocateState.FAILED if error is not None else LocateState.DONE
        _logger.debug("Cycle %d: %s -> %s", self.cycles, self.state, final)
        self.state = final
        self.last_error = error

        callbacks: list[CompletionCallback] = []
        if self._on_complete is not None:
            callbacks.append(self._on_complete)
        callbacks.extend(self._waiters)
        self._on_complete = None
        self._waiters = []

        self.state = LocateState.IDLE
        return callbacks


def fire_callbacks(callbacks: list[CompletionCallback], *, what: str) -> None:
    """Invoke completion callbacks; a failing callback never breaks the node."""
    for callback in callbacks:
        try:
            callback()
        except Exception:
            _logger.warning("%s callback failed", what, exc_info=True)
