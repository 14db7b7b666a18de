"""tsserver protocol client implementation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Mapping

from tsclient.transport.base import Transport
from tsclient.protocol.codec import decode_message
from tsclient.protocol.correlator import RequestCorrelator
from tsclient.protocol.errors import ConnectionClosed
from tsclient.protocol.events import (
    ClientEvent,
    ClientEventType,
    EventDispatcher,
    EventPolicy,
)
from tsclient.protocol.messages import Event, Response
from tsclient.protocol.state import (
    SessionState,
    SessionStateMachine,
)

logger = logging.getLogger(__name__)

# Type aliases for listeners
ClientEventHandler = Callable[[ClientEvent], None]
EventPredicate = Callable[[ClientEvent], bool]


class TSServerClient:
    """
    Core tsserver protocol client.

    Handles sequence numbering, request/response correlation, event
    routing and the server session lifecycle. A single reader task is
    the only consumer of the server's output; callers await their own
    futures and never block it.
    """

    def __init__(
        self,
        transport: Transport,
        event_policies: Mapping[str, EventPolicy] | None = None,
    ):
        """
        Initialize the client.

        Args:
            transport: Transport running the server process.
            event_policies: Overrides for the default event routing.
        """
        self.transport = transport
        self._event_policies = event_policies

        self._state = SessionStateMachine()
        self._listeners: list[ClientEventHandler] = []
        self._waiters: list[tuple[ClientEventType, EventPredicate | None, asyncio.Future]] = []
        self._correlator: RequestCorrelator | None = None
        self._dispatcher: EventDispatcher | None = None
        self._receive_task: asyncio.Task | None = None
        self._session_open = False
        self._stop_requested = False
        self._malformed_count = 0

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state.state

    @property
    def is_running(self) -> bool:
        """Check if the client accepts requests."""
        return self._state.is_running

    @property
    def next_seq(self) -> int:
        """Sequence number the next request of this session will use."""
        return self._correlator.next_seq if self._correlator else 0

    @property
    def pending_count(self) -> int:
        """Requests of the current session still waiting for a response."""
        return self._correlator.pending_count if self._correlator else 0

    @property
    def malformed_count(self) -> int:
        """Lines of the current session that were not protocol messages."""
        return self._malformed_count

    @property
    def unmatched_count(self) -> int:
        """Responses of the current session that matched no request."""
        return self._correlator.unmatched_count if self._correlator else 0

    def on_state_change(
        self,
        callback: Callable[[SessionState, SessionState], None],
    ) -> None:
        """Register callback for state changes."""
        self._state.on_transition(callback)

    def on_event(self, handler: ClientEventHandler) -> None:
        """
        Register a listener for lifecycle, diagnostic and close events.

        Listeners stay registered across sessions.

        Args:
            handler: Called with each ClientEvent, on the event loop thread.
        """
        self._listeners.append(handler)

    def remove_listener(self, handler: ClientEventHandler) -> None:
        """Remove a previously registered listener."""
        try:
            self._listeners.remove(handler)
        except ValueError:
            pass

    def wait_for_event(
        self,
        event_type: ClientEventType,
        predicate: EventPredicate | None = None,
    ) -> asyncio.Future[ClientEvent]:
        """
        Future completed by the next matching client event.

        If the session ends first, the future fails with ConnectionClosed
        (unless CONNECTION_CLOSED is the awaited type).

        Args:
            event_type: Type of event to wait for.
            predicate: Optional extra filter on the event.
        """
        future: asyncio.Future[ClientEvent] = asyncio.get_running_loop().create_future()
        self._waiters.append((event_type, predicate, future))
        return future

    async def start(self) -> None:
        """
        Launch the server and begin a new session.

        Each session starts with sequence number 0, no pending requests
        and an empty diagnostic batch.

        Raises:
            LaunchError: If the server could not be spawned.
            ConnectionClosed: If a start or stop is still in progress.
        """
        if self._state.is_running:
            return
        if not self._state.can_start:
            raise ConnectionClosed(f"tsserver session is {self._state.state.name.lower()}")

        self._state.transition(SessionState.STARTING)
        try:
            await self.transport.start()
        except Exception:
            self._state.transition(SessionState.IDLE)
            raise

        self._correlator = RequestCorrelator(self.transport.write)
        self._dispatcher = EventDispatcher(self._emit_event, self._event_policies)
        self._malformed_count = 0
        self._session_open = True
        self._stop_requested = False
        self._receive_task = asyncio.create_task(
            self._receive_loop(),
            name="tsserver-receive-loop",
        )
        self._state.transition(SessionState.RUNNING)

    async def stop(self) -> None:
        """
        Stop the server and end the session.

        Requests still pending fail with ConnectionClosed.
        """
        self._stop_requested = True
        if self._state.is_running:
            self._state.transition(SessionState.STOPPING)

        await self.transport.stop()

        task = self._receive_task
        self._receive_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._end_session("client stopped")

    def send(self, command: str, arguments: Any = None) -> asyncio.Future[Any]:
        """
        Send a request and return the future for its response body.

        Does not wait for the response. The future fails with
        ApplicationError if the server rejects the request and with
        ConnectionClosed if the session ends first.

        Raises:
            ConnectionClosed: If no session is running.
        """
        return self._require_session(command).send(command, arguments)

    def send_no_reply(self, command: str, arguments: Any = None) -> int:
        """
        Send a request the server will not answer (fire-and-forget).

        Returns:
            The sequence number consumed by the request.

        Raises:
            ConnectionClosed: If no session is running.
        """
        return self._require_session(command).send_no_reply(command, arguments)

    async def request(self, command: str, arguments: Any = None) -> Any:
        """
        Send a request and wait for the response body.

        Raises:
            ApplicationError: If the server answered with success=false.
            ConnectionClosed: If the session ended before the response.
        """
        future = self.send(command, arguments)
        await self.drain()
        return await future

    async def notify(self, command: str, arguments: Any = None) -> int:
        """Send a fire-and-forget request and flush it to the server."""
        seq = self.send_no_reply(command, arguments)
        await self.drain()
        return seq

    async def drain(self) -> None:
        """Wait for queued requests to reach the server's stdin."""
        try:
            await self.transport.drain()
        except OSError as e:
            # The reader sees EOF next and fails the pending requests.
            logger.warning(f"Failed to flush requests to tsserver: {e}")

    def _require_session(self, command: str) -> RequestCorrelator:
        """Return the live correlator or refuse the request."""
        if not self._state.is_running or self._correlator is None:
            raise ConnectionClosed(
                f"tsserver session is {self._state.state.name.lower()}",
                command=command,
            )
        return self._correlator

    async def _receive_loop(self) -> None:
        """Background task routing every line the server writes."""
        reason = "tsserver closed its output"
        try:
            async for line in self.transport.lines():
                self._handle_line(line)
        except asyncio.CancelledError:
            reason = "client stopped"
        except Exception as e:
            logger.error(f"Receive loop error: {e}")
            reason = f"receive loop failed: {e}"

        if self._stop_requested:
            reason = "client stopped"
        self._end_session(reason)

    def _handle_line(self, line: str) -> None:
        """Decode one line and route it."""
        message = decode_message(line)
        try:
            if isinstance(message, Response):
                self._correlator.on_response(message)
            elif isinstance(message, Event):
                self._dispatcher.dispatch(message)
            else:
                self._malformed_count += 1
                logger.debug(f"Dropping malformed message ({message.reason}): {line[:80]}")
        except Exception:
            logger.exception(f"Error handling {message}")

    def _end_session(self, reason: str) -> None:
        """Fail pending requests and announce the end of the session once."""
        if not self._session_open:
            return
        self._session_open = False

        returncode = self.transport.returncode
        failed = self._correlator.fail_all(
            lambda pending: ConnectionClosed(
                reason,
                command=pending.command,
                request_seq=pending.seq,
                returncode=returncode,
            )
        )
        if failed:
            logger.warning(f"Failed {failed} pending request(s): {reason}")

        dropped = self._dispatcher.take_batch()
        if dropped:
            logger.debug(f"Discarding {len(dropped)} diagnostics of an unfinished batch")

        if self._state.state in (SessionState.RUNNING, SessionState.STOPPING):
            self._state.transition(SessionState.CLOSED)

        logger.info(f"tsserver session ended: {reason}")
        self._emit_event(
            ClientEvent(
                type=ClientEventType.CONNECTION_CLOSED,
                timestamp=time.time(),
                body={"reason": reason, "returncode": returncode},
                error=ConnectionClosed(reason, returncode=returncode),
            )
        )

    def _emit_event(self, event: ClientEvent) -> None:
        """Deliver an event to waiters and listeners."""
        self._resolve_waiters(event)
        for handler in list(self._listeners):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event listener failed for {event}")

    def _resolve_waiters(self, event: ClientEvent) -> None:
        """Complete the futures handed out by wait_for_event."""
        remaining = []
        for event_type, predicate, future in self._waiters:
            if future.done():
                continue
            try:
                matched = event_type is event.type and (predicate is None or predicate(event))
            except Exception as e:
                logger.exception(f"Event waiter predicate failed for {event}")
                future.set_exception(e)
                continue
            if matched:
                future.set_result(event)
            elif event.type is ClientEventType.CONNECTION_CLOSED:
                future.set_exception(
                    ConnectionClosed(
                        event.body["reason"],
                        returncode=event.body["returncode"],
                    )
                )
            else:
                remaining.append((event_type, predicate, future))
        self._waiters = remaining

    async def __aenter__(self) -> "TSServerClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
