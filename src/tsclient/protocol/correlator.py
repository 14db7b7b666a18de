"""Request/response correlation by sequence number."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from tsclient.protocol.codec import encode_request
from tsclient.protocol.errors import ApplicationError, ConnectionClosed
from tsclient.protocol.messages import Request, Response
from tsclient.transport.base import TransportError

logger = logging.getLogger(__name__)

# Writes one encoded request to the server
Writer = Callable[[bytes], None]


@dataclass
class PendingRequest:
    """A sent request still waiting for its response."""

    seq: int
    command: str
    future: asyncio.Future[Any]


class RequestCorrelator:
    """
    Owns the sequence counter and the table of pending requests.

    One correlator serves one server session. All methods must be called
    from the event loop thread; ``send`` allocates the sequence number,
    registers the pending entry and writes the request without yielding,
    so a response can never be processed before its entry exists.
    """

    def __init__(self, write: Writer):
        """
        Initialize the correlator.

        Args:
            write: Callable queueing encoded bytes on the server's stdin.
        """
        self._write = write
        self._next_seq = 0
        self._pending: dict[int, PendingRequest] = {}
        self._unmatched_count = 0

    @property
    def next_seq(self) -> int:
        """Sequence number the next request will use."""
        return self._next_seq

    @property
    def pending_count(self) -> int:
        """Number of requests waiting for a response."""
        return len(self._pending)

    @property
    def unmatched_count(self) -> int:
        """Responses dropped because no request was waiting for them."""
        return self._unmatched_count

    def is_pending(self, seq: int) -> bool:
        """Check if a response for ``seq`` is still expected."""
        return seq in self._pending

    def send(self, command: str, arguments: Any = None) -> asyncio.Future[Any]:
        """
        Send a request and return the future its response will complete.

        The future resolves with the response body, or fails with
        ApplicationError or ConnectionClosed.

        Raises:
            ConnectionClosed: If the request could not be written.
            TypeError: If the arguments are not JSON-serializable.
        """
        request = self._allocate(command, arguments)
        data = encode_request(request)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request.seq] = PendingRequest(
            seq=request.seq,
            command=command,
            future=future,
        )

        try:
            self._write(data)
        except (TransportError, OSError) as e:
            self._pending.pop(request.seq, None)
            raise ConnectionClosed(
                f"Failed to write request: {e}",
                command=command,
                request_seq=request.seq,
            ) from e

        logger.debug(f"Sent {request}")
        return future

    def send_no_reply(self, command: str, arguments: Any = None) -> int:
        """
        Send a request without registering for a response.

        The sequence number is still consumed.

        Returns:
            The sequence number used.

        Raises:
            ConnectionClosed: If the request could not be written.
        """
        request = self._allocate(command, arguments)
        data = encode_request(request)

        try:
            self._write(data)
        except (TransportError, OSError) as e:
            raise ConnectionClosed(
                f"Failed to write request: {e}",
                command=command,
                request_seq=request.seq,
            ) from e

        logger.debug(f"Sent {request} (no reply expected)")
        return request.seq

    def on_response(self, response: Response) -> bool:
        """
        Complete the pending request matching ``response``.

        Returns:
            True if a waiting request was completed, False if the
            response was dropped.
        """
        pending = self._pending.pop(response.request_seq, None)
        if pending is None:
            self._unmatched_count += 1
            logger.debug(f"No pending request for seq: {response.request_seq}")
            return False

        if pending.future.done():
            # The awaiting task gave up on this request
            self._unmatched_count += 1
            logger.debug(f"Request {pending.seq} ({pending.command}) was abandoned")
            return False

        if response.success:
            pending.future.set_result(response.body)
        else:
            pending.future.set_exception(
                ApplicationError.from_response(response, command=pending.command)
            )
        return True

    def fail_all(self, make_error: Callable[[PendingRequest], Exception]) -> int:
        """
        Fail every pending request.

        Args:
            make_error: Builds the exception for each pending request.

        Returns:
            Number of requests failed.
        """
        pending = list(self._pending.values())
        self._pending.clear()

        failed = 0
        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(make_error(entry))
                failed += 1
        return failed

    def _allocate(self, command: str, arguments: Any) -> Request:
        """Build the next request, consuming one sequence number."""
        request = Request(seq=self._next_seq, command=command, arguments=arguments)
        self._next_seq += 1
        return request
