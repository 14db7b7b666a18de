"""Stdio transport: runs tsserver as a child process."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import time
from typing import AsyncIterator

from tsclient.transport.base import (
    Transport,
    TransportError,
    LaunchError,
)
from tsclient.transport.framing import iter_lines
from tsclient.transport.types import (
    TransportConfig,
    TransportEvent,
    TransportEventType,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"


class StdioTransport(Transport):
    """
    Transport over the stdin/stdout pipes of a tsserver process.

    This transport:
    - Launches the server with piped stdio (through ``cmd /c`` on Windows)
    - Runs the child in its own process group on POSIX
    - Forwards the child's stderr to the logger
    - Stops the child with SIGINT, escalating to SIGKILL after a timeout
    """

    def __init__(self, config: TransportConfig | None = None):
        super().__init__(config or TransportConfig())
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task | None = None
        self._returncode: int | None = None

    @property
    def pid(self) -> int | None:
        """Process id of the running child."""
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        """Exit status of the last child process, if it has exited."""
        if self._process is not None:
            return self._process.returncode
        return self._returncode

    def is_running(self) -> bool:
        """Check if the child is started and has not exited."""
        return self._process is not None and self._process.returncode is None

    def build_command(self) -> list[str]:
        """Command line to spawn, wrapped for the current platform."""
        if IS_WINDOWS:
            return ["cmd", "/c", *self.config.argv]
        return self.config.argv

    async def start(self) -> None:
        """Spawn the child process with piped stdio."""
        if self.is_running():
            return

        cmd = self.build_command()
        self._emit_event(
            TransportEvent(
                type=TransportEventType.STARTING,
                timestamp=time.time(),
                data={"command": cmd},
            )
        )

        env = None
        if self.config.env:
            env = {**os.environ, **self.config.env}

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.config.cwd,
                env=env,
                limit=self.config.read_limit,
                start_new_session=not IS_WINDOWS,
            )
        except OSError as e:
            self._process = None
            self._emit_event(
                TransportEvent(
                    type=TransportEventType.ERROR,
                    timestamp=time.time(),
                    data={"command": cmd},
                    error=e,
                )
            )
            raise LaunchError(f"Failed to launch {cmd[0]}: {e}", cause=e) from e

        self._returncode = None
        self._stderr_task = asyncio.create_task(
            self._forward_stderr(self._process.stderr),
            name="tsserver-stderr",
        )

        logger.info(f"Launched tsserver: {' '.join(cmd)} (pid={self._process.pid})")
        self._emit_event(
            TransportEvent(
                type=TransportEventType.STARTED,
                timestamp=time.time(),
                data={"pid": self._process.pid},
            )
        )

    async def stop(self) -> None:
        """Interrupt the child's process group and wait for it to exit."""
        process = self._process
        if process is None:
            return

        self._emit_event(
            TransportEvent(
                type=TransportEventType.STOPPING,
                timestamp=time.time(),
                data={"pid": process.pid},
            )
        )

        if process.returncode is None:
            self._signal(process, signal.SIGINT)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.config.stop_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"tsserver (pid={process.pid}) ignored SIGINT for "
                    f"{self.config.stop_timeout}s, killing it"
                )
                self._signal(process, getattr(signal, "SIGKILL", signal.SIGTERM))
                await process.wait()

        if self._stderr_task is not None:
            try:
                await asyncio.wait_for(self._stderr_task, timeout=self.config.stop_timeout)
            except asyncio.TimeoutError:
                self._stderr_task.cancel()
            self._stderr_task = None

        if process.stdin is not None:
            process.stdin.close()

        self._returncode = process.returncode
        self._process = None

        logger.info(f"tsserver exited (pid={process.pid}, returncode={self._returncode})")
        self._emit_event(
            TransportEvent(
                type=TransportEventType.STOPPED,
                timestamp=time.time(),
                data={"pid": process.pid, "returncode": self._returncode},
            )
        )

    def write(self, data: bytes) -> None:
        """Queue bytes on the child's stdin."""
        process = self._process
        if process is None or process.returncode is not None or process.stdin is None:
            raise TransportError("tsserver is not running")
        if process.stdin.is_closing():
            raise TransportError("tsserver stdin is closed")

        process.stdin.write(data)
        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"bytes": len(data)},
            )
        )

    async def drain(self) -> None:
        """Wait for stdin flow control."""
        if self._process is not None and self._process.stdin is not None:
            await self._process.stdin.drain()

    async def lines(self) -> AsyncIterator[str]:
        """Candidate JSON lines from the child's stdout until it closes."""
        if self._process is None or self._process.stdout is None:
            raise TransportError("tsserver is not running")

        async for line in iter_lines(self._process.stdout):
            yield line

    def _signal(self, process: asyncio.subprocess.Process, sig: int) -> None:
        """Deliver ``sig`` to the child's process group (the child on Windows)."""
        try:
            if IS_WINDOWS:
                if sig == signal.SIGINT:
                    process.terminate()
                else:
                    process.kill()
            else:
                os.killpg(process.pid, sig)
        except ProcessLookupError:
            logger.debug(f"tsserver (pid={process.pid}) already gone")

    async def _forward_stderr(self, stream: asyncio.StreamReader | None) -> None:
        """Read the child's stderr and log it."""
        if stream is None:
            return

        while True:
            try:
                line = await stream.readline()
            except ValueError:
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                logger.debug(f"[tsserver stderr] {text}")
