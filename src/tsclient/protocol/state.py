"""Session lifecycle of a tsserver client."""

import logging
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """
    Where the client is in the life of a server process.

    A session runs from a successful launch until the process exits or is
    stopped; the client can then start a fresh one:

        IDLE -> STARTING -> RUNNING -> STOPPING -> CLOSED -> STARTING ...

    A failed launch falls back from STARTING to IDLE, and a server that
    exits on its own takes RUNNING straight to CLOSED.
    """

    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()
    CLOSED = auto()

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: SessionState, to_state: SessionState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


StateTransitionCallback = Callable[[SessionState, SessionState], None]

SESSION_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.STARTING}),
    SessionState.STARTING: frozenset({SessionState.RUNNING, SessionState.IDLE}),
    SessionState.RUNNING: frozenset({SessionState.STOPPING, SessionState.CLOSED}),
    SessionState.STOPPING: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset({SessionState.STARTING}),
}

# States from which a new server process may be launched
STARTABLE_STATES = frozenset({SessionState.IDLE, SessionState.CLOSED})


class SessionStateMachine:
    """Current SessionState of a client, with transition checks and listeners."""

    def __init__(self, initial_state: SessionState = SessionState.IDLE):
        self._state = initial_state
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while requests may be sent."""
        return self._state is SessionState.RUNNING

    @property
    def can_start(self) -> bool:
        """True when no server process is starting, running or stopping."""
        return self._state in STARTABLE_STATES

    def can_transition_to(self, new_state: SessionState) -> bool:
        return new_state in SESSION_TRANSITIONS[self._state]

    def transition(self, new_state: SessionState) -> None:
        """
        Move to ``new_state`` and notify listeners with (old, new).

        A listener that raises is logged; the others still run.

        Raises:
            InvalidStateTransition: If ``new_state`` is not reachable.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)

        old_state, self._state = self._state, new_state
        logger.debug(f"Session state {old_state} -> {new_state}")

        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception(f"State listener failed on {old_state} -> {new_state}")

    def on_transition(self, callback: StateTransitionCallback) -> None:
        self._listeners.append(callback)
