"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path
from typing import Any, AsyncIterator

import orjson
import pytest

from tsclient.protocol.client import TSServerClient
from tsclient.transport.base import Transport, TransportError
from tsclient.transport.types import TransportConfig

FAKE_TSSERVER = Path(__file__).parent / "fixtures" / "fake_tsserver.py"


class FakeTransport(Transport):
    """
    In-memory transport for driving the client without a process.

    Writes are recorded; lines are fed by the test and replayed to the
    client's reader. ``exit()`` simulates the server process dying.
    """

    def __init__(self) -> None:
        super().__init__(TransportConfig(command="fake-tsserver"))
        self.written: list[bytes] = []
        self.start_count = 0
        self.fail_writes = False
        self._running = False
        self._returncode: int | None = None
        self._lines: asyncio.Queue | None = None

    async def start(self) -> None:
        self._lines = asyncio.Queue()
        self._running = True
        self._returncode = None
        self.start_count += 1

    async def stop(self) -> None:
        if self._running:
            self.exit(0)

    def exit(self, returncode: int = 0) -> None:
        """Simulate the server exiting: its stdout reaches EOF."""
        self._running = False
        self._returncode = returncode
        self._lines.put_nowait(None)

    def write(self, data: bytes) -> None:
        if not self._running:
            raise TransportError("tsserver is not running")
        if self.fail_writes:
            raise BrokenPipeError("stdin closed")
        self.written.append(data)

    async def drain(self) -> None:
        pass

    async def lines(self) -> AsyncIterator[str]:
        queue = self._lines
        while True:
            line = await queue.get()
            if line is None:
                return
            yield line

    def is_running(self) -> bool:
        return self._running

    @property
    def returncode(self) -> int | None:
        return self._returncode

    @property
    def sent(self) -> list[dict[str, Any]]:
        """Requests written so far, decoded."""
        return [orjson.loads(data) for data in self.written]

    def feed(self, message: Any) -> None:
        """Queue a raw line (str) or a message (dict) for the reader."""
        if not isinstance(message, str):
            message = orjson.dumps(message).decode()
        self._lines.put_nowait(message)

    def respond(
        self,
        request_seq: int,
        body: Any = None,
        success: bool = True,
        message: str | None = None,
        command: str | None = None,
    ) -> None:
        """Queue a response the way tsserver formats it."""
        response: dict[str, Any] = {
            "seq": 0,
            "type": "response",
            "request_seq": request_seq,
            "success": success,
            "body": body,
        }
        if command is not None:
            response["command"] = command
        if message is not None:
            response["message"] = message
        self.feed(response)

    def event(self, name: str, body: Any = None) -> None:
        """Queue an event the way tsserver formats it."""
        self.feed({"seq": 0, "type": "event", "event": name, "body": body})

    async def settle(self) -> None:
        """Let the client's reader process everything queued so far."""
        for _ in range(10):
            await asyncio.sleep(0)


@pytest.fixture
def transport():
    """In-memory transport."""
    return FakeTransport()


@pytest.fixture
def client(transport):
    """Client bound to the in-memory transport (not started)."""
    return TSServerClient(transport)


@pytest.fixture
def fake_server_config():
    """Launch settings running the scripted fake tsserver."""
    return TransportConfig(
        command=sys.executable,
        args=["-u", str(FAKE_TSSERVER)],
        stop_timeout=5.0,
    )
