from __future__ import annotations

from enum import Enum


class HandlerState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERRORED = "errored"
    DISPOSED = "disposed"


TRANSITIONS: dict[HandlerState, frozenset[HandlerState]] = {
    HandlerState.IDLE: frozenset(
        {
            HandlerState.STREAMING,
            HandlerState.COMPLETED,
            HandlerState.CANCELLED,
            HandlerState.ERRORED,
            HandlerState.DISPOSED,
        }
    ),
    HandlerState.STREAMING: frozenset(
        {HandlerState.COMPLETED, HandlerState.CANCELLED, HandlerState.ERRORED, HandlerState.DISPOSED}
    ),
    # A failed final push still reports through the error path.
    HandlerState.COMPLETED: frozenset({HandlerState.ERRORED, HandlerState.DISPOSED}),
    HandlerState.CANCELLED: frozenset({HandlerState.DISPOSED}),
    HandlerState.ERRORED: frozenset({HandlerState.DISPOSED}),
    HandlerState.DISPOSED: frozenset(),
}

LIVE_STATES = frozenset({HandlerState.IDLE, HandlerState.STREAMING})


class InvalidStateTransition(RuntimeError):
    """Raised when a transition is not present in the transition table."""


class HandlerStateMachine:
    """Tagged lifecycle state for one streaming response.

    Every move is a synchronous check-and-set, so under a single event loop two
    coroutines racing for a terminal state cannot both win.
    """

    def __init__(self) -> None:
        self._state = HandlerState.IDLE

    @property
    def state(self) -> HandlerState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state in LIVE_STATES

    def can_transition(self, target: HandlerState) -> bool:
        return target in TRANSITIONS[self._state]

    def try_transition(self, target: HandlerState) -> bool:
        if not self.can_transition(target):
            return False
        self._state = target
        return True

    def transition(self, target: HandlerState) -> None:
        if not self.try_transition(target):
            raise InvalidStateTransition(f"cannot move from {self._state.value} to {target.value}")
