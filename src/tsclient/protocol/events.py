"""Routing of server events and diagnostic batching."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Mapping

from tsclient.protocol.messages import Event

logger = logging.getLogger(__name__)


class ClientEventType(Enum):
    """Events the client re-emits to its listeners."""

    LIFECYCLE = auto()
    DIAGNOSTIC_BATCH = auto()
    CONNECTION_CLOSED = auto()


class EventPolicy(Enum):
    """How the dispatcher treats a server event."""

    INFORMATIONAL = auto()
    LIFECYCLE = auto()
    DIAGNOSTIC = auto()
    BATCH_TERMINATOR = auto()


DEFAULT_EVENT_POLICIES: dict[str, EventPolicy] = {
    "telemetry": EventPolicy.INFORMATIONAL,
    "projectsUpdatedInBackground": EventPolicy.INFORMATIONAL,
    "projectLoadingStart": EventPolicy.INFORMATIONAL,
    "typingsInstallerPid": EventPolicy.INFORMATIONAL,
    "projectLoadingFinish": EventPolicy.LIFECYCLE,
    "semanticDiag": EventPolicy.DIAGNOSTIC,
    "syntaxDiag": EventPolicy.DIAGNOSTIC,
    "suggestionDiag": EventPolicy.DIAGNOSTIC,
    "requestCompleted": EventPolicy.BATCH_TERMINATOR,
}


@dataclass
class ClientEvent:
    """Event delivered to client listeners."""

    type: ClientEventType
    timestamp: float
    name: str | None = None
    body: Any = None
    request_seq: int | None = None
    error: Exception | None = None

    @property
    def diagnostics(self) -> list[Any]:
        """Diagnostic bodies of a DIAGNOSTIC_BATCH event."""
        if self.type is ClientEventType.DIAGNOSTIC_BATCH:
            return self.body
        return []

    def __str__(self) -> str:
        base = f"[{self.type.name}]"
        if self.name:
            base += f" {self.name}"
        if self.type is ClientEventType.DIAGNOSTIC_BATCH:
            base += f" ({len(self.body)} diagnostics)"
        if self.error:
            base += f" error={self.error}"
        return base


EventEmitter = Callable[[ClientEvent], None]


class EventDispatcher:
    """
    Applies an EventPolicy to each server event.

    Diagnostic events are buffered and released as a single
    DIAGNOSTIC_BATCH when the batch terminator arrives, even when the
    batch is empty, so listeners can tell "no diagnostics" from "not
    finished yet".
    """

    def __init__(
        self,
        emit: EventEmitter,
        policies: Mapping[str, EventPolicy] | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            emit: Receives every event to re-emit.
            policies: Event name to policy; unknown names are informational.
        """
        self._emit = emit
        self._policies = dict(DEFAULT_EVENT_POLICIES if policies is None else policies)
        self._batch: list[Any] = []

    @property
    def pending_diagnostics(self) -> list[Any]:
        """Diagnostics accumulated since the last flush."""
        return list(self._batch)

    def policy_for(self, name: str) -> EventPolicy:
        """Policy applied to events called ``name``."""
        return self._policies.get(name, EventPolicy.INFORMATIONAL)

    def dispatch(self, event: Event) -> None:
        """Route one server event."""
        policy = self.policy_for(event.event)

        if policy is EventPolicy.DIAGNOSTIC:
            self._batch.append(event.body)
        elif policy is EventPolicy.BATCH_TERMINATOR:
            self._flush(event)
        elif policy is EventPolicy.LIFECYCLE:
            self._emit(
                ClientEvent(
                    type=ClientEventType.LIFECYCLE,
                    timestamp=time.time(),
                    name=event.event,
                    body=event.body,
                )
            )
        else:
            logger.debug(f"Ignoring informational event: {event.event}")

    def take_batch(self) -> list[Any]:
        """Return the accumulated diagnostics and start a new batch."""
        batch, self._batch = self._batch, []
        return batch

    def _flush(self, event: Event) -> None:
        """Release the current batch to listeners."""
        batch = self.take_batch()
        request_seq = None
        if isinstance(event.body, dict):
            seq = event.body.get("request_seq")
            if isinstance(seq, int) and not isinstance(seq, bool):
                request_seq = seq

        logger.debug(f"Diagnostic batch complete: {len(batch)} diagnostics")
        self._emit(
            ClientEvent(
                type=ClientEventType.DIAGNOSTIC_BATCH,
                timestamp=time.time(),
                name=event.event,
                body=batch,
                request_seq=request_seq,
            )
        )
