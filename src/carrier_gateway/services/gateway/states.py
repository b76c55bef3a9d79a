"""Per-request dispatch state machine."""

from __future__ import annotations

from enum import Enum

from ...errors import FailureKind


class DispatchState(str, Enum):
    RECEIVED = "received"
    CREDENTIAL_RESOLVED = "credential_resolved"
    TRANSLATED = "translated"
    CARRIER_CALLED = "carrier_called"
    RESPONSE_MAPPED = "response_mapped"
    DONE = "done"
    FAILED = "failed"


_SEQUENCE = (
    DispatchState.RECEIVED,
    DispatchState.CREDENTIAL_RESOLVED,
    DispatchState.TRANSLATED,
    DispatchState.CARRIER_CALLED,
    DispatchState.RESPONSE_MAPPED,
    DispatchState.DONE,
)

TERMINAL_STATES = frozenset({DispatchState.DONE, DispatchState.FAILED})


class InvalidTransition(RuntimeError):
    pass


class DispatchTrace:
    """Tracks one request through the dispatch states.

    Moves only to the next state in sequence. ``DONE`` may also be reached
    early when a trigger turns out not to apply, and ``FAILED`` from any
    non-terminal state. Terminal states absorb.
    """

    def __init__(self, operation: str, shop: str | None = None, reference_id: str | None = None) -> None:
        self.operation = operation
        self.shop = shop
        self.reference_id = reference_id
        self.state = DispatchState.RECEIVED
        self.history: list[DispatchState] = [DispatchState.RECEIVED]
        self.failure: FailureKind | None = None

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def _enter(self, state: DispatchState) -> None:
        self.state = state
        self.history.append(state)

    def advance(self, state: DispatchState) -> None:
        if self.terminal:
            raise InvalidTransition(f"{self.operation}: cannot leave terminal state {self.state.value}")
        if state is DispatchState.FAILED:
            raise InvalidTransition("use fail() to enter the failed state")
        expected = _SEQUENCE[_SEQUENCE.index(self.state) + 1]
        if state is not expected:
            raise InvalidTransition(f"{self.operation}: {self.state.value} -> {state.value} is not allowed")
        self._enter(state)

    def finish_early(self) -> None:
        if self.terminal:
            raise InvalidTransition(f"{self.operation}: cannot leave terminal state {self.state.value}")
        self._enter(DispatchState.DONE)

    def fail(self, kind: FailureKind) -> None:
        if self.terminal:
            raise InvalidTransition(f"{self.operation}: cannot fail from terminal state {self.state.value}")
        self.failure = kind
        self._enter(DispatchState.FAILED)
