"""Tests for StdioTransport, end to end against a scripted fake tsserver."""

import asyncio
import logging

import pytest

from tsclient.protocol.client import TSServerClient
from tsclient.protocol.errors import ApplicationError, ConnectionClosed
from tsclient.protocol.state import SessionState
from tsclient.transport.base import LaunchError, TransportError
from tsclient.transport.stdio import StdioTransport
from tsclient.transport.types import DEFAULT_READ_LIMIT, TransportConfig, TransportEventType


class TestTransportConfig:
    def test_defaults(self):
        config = TransportConfig()
        assert config.command == "tsserver"
        assert config.argv == ["tsserver"]
        assert config.read_limit == DEFAULT_READ_LIMIT
        assert config.stop_timeout == 5.0

    def test_argv_includes_args(self):
        config = TransportConfig(command="node", args=["tsserver.js", "--locale", "en"])
        assert config.argv == ["node", "tsserver.js", "--locale", "en"]

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"command": ""}, "command is required"),
            ({"read_limit": 0}, "read_limit must be positive"),
            ({"stop_timeout": -1}, "stop_timeout must be positive"),
        ],
    )
    def test_validation(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            TransportConfig(**kwargs)


class TestStdioTransportUnit:
    def test_command_on_posix(self, monkeypatch):
        monkeypatch.setattr("tsclient.transport.stdio.IS_WINDOWS", False)
        transport = StdioTransport(TransportConfig(command="tsserver", args=["--useInferredProjectPerProjectRoot"]))
        assert transport.build_command() == ["tsserver", "--useInferredProjectPerProjectRoot"]

    def test_command_on_windows_goes_through_cmd(self, monkeypatch):
        monkeypatch.setattr("tsclient.transport.stdio.IS_WINDOWS", True)
        transport = StdioTransport(TransportConfig(command="tsserver"))
        assert transport.build_command() == ["cmd", "/c", "tsserver"]

    def test_write_before_start(self):
        transport = StdioTransport()
        with pytest.raises(TransportError, match="not running"):
            transport.write(b"{}\n")

    @pytest.mark.asyncio
    async def test_lines_before_start(self):
        transport = StdioTransport()
        with pytest.raises(TransportError):
            async for _ in transport.lines():
                pass

    @pytest.mark.asyncio
    async def test_stop_before_start_is_a_no_op(self):
        transport = StdioTransport()
        await transport.stop()
        assert not transport.is_running()
        assert transport.pid is None
        assert transport.returncode is None

    @pytest.mark.asyncio
    async def test_launch_failure(self, tmp_path):
        transport = StdioTransport(TransportConfig(command=str(tmp_path / "no-such-tsserver")))
        events = []
        transport.on_event(events.append)

        with pytest.raises(LaunchError) as exc_info:
            await transport.start()

        assert isinstance(exc_info.value.cause, OSError)
        assert not transport.is_running()
        assert [e.type for e in events] == [TransportEventType.STARTING, TransportEventType.ERROR]

    @pytest.mark.asyncio
    async def test_client_launch_failure_leaves_session_idle(self, tmp_path):
        client = TSServerClient(StdioTransport(TransportConfig(command=str(tmp_path / "missing"))))

        with pytest.raises(LaunchError):
            await client.start()

        assert client.state == SessionState.IDLE


class TestEndToEnd:
    """Full client over a real child process running the fake server."""

    @pytest.mark.asyncio
    async def test_request_round_trip(self, fake_server_config):
        transport = StdioTransport(fake_server_config)
        async with TSServerClient(transport) as client:
            assert transport.is_running()
            assert transport.pid is not None

            arguments = {"file": "a.ts", "line": 1, "offset": 1, "text": "line1\nline2"}
            body = await client.request("quickinfo", arguments)

            assert body == {"echo": arguments}
            # Banner and Content-Length headers never reach the decoder
            assert client.malformed_count == 0

        assert not transport.is_running()

    @pytest.mark.asyncio
    async def test_concurrent_requests(self, fake_server_config):
        async with TSServerClient(StdioTransport(fake_server_config)) as client:
            results = await asyncio.gather(
                *(client.request("quickinfo", {"n": n}) for n in range(20))
            )
        assert results == [{"echo": {"n": n}} for n in range(20)]

    @pytest.mark.asyncio
    async def test_failed_request(self, fake_server_config):
        async with TSServerClient(StdioTransport(fake_server_config)) as client:
            with pytest.raises(ApplicationError, match="No project."):
                await client.request("fail", {})

            # The session survives a failed request
            assert await client.request("quickinfo", {}) == {"echo": {}}

    @pytest.mark.asyncio
    async def test_transport_events(self, fake_server_config):
        transport = StdioTransport(fake_server_config)
        events = []
        transport.on_event(events.append)

        async with TSServerClient(transport) as client:
            await client.request("quickinfo", {})

        types = [e.type for e in events]
        assert types[:2] == [TransportEventType.STARTING, TransportEventType.STARTED]
        assert TransportEventType.MESSAGE_SENT in types
        assert types[-2:] == [TransportEventType.STOPPING, TransportEventType.STOPPED]

    @pytest.mark.asyncio
    async def test_stderr_is_logged(self, fake_server_config, caplog):
        with caplog.at_level(logging.DEBUG, logger="tsclient.transport.stdio"):
            async with TSServerClient(StdioTransport(fake_server_config)) as client:
                await client.request("quickinfo", {})

        assert "[tsserver stderr] fake tsserver ready" in caplog.text

    @pytest.mark.asyncio
    async def test_stop_fails_unanswered_request(self, fake_server_config):
        client = TSServerClient(StdioTransport(fake_server_config))
        await client.start()

        future = client.send("hang", {})
        await client.drain()
        await client.stop()

        with pytest.raises(ConnectionClosed):
            await future
        assert client.state == SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_server_exit_fails_pending_requests(self, fake_server_config):
        transport = StdioTransport(fake_server_config)
        client = TSServerClient(transport)
        await client.start()

        hanging = client.send("hang", {})
        exiting = client.send("exit", {"code": 3})
        await client.drain()

        results = await asyncio.wait_for(
            asyncio.gather(hanging, exiting, return_exceptions=True),
            timeout=10,
        )

        assert all(isinstance(result, ConnectionClosed) for result in results)
        assert [result.request_seq for result in results] == [0, 1]
        assert client.state == SessionState.CLOSED

        await client.stop()
        assert transport.returncode == 3

    @pytest.mark.asyncio
    async def test_restart_after_exit(self, fake_server_config):
        client = TSServerClient(StdioTransport(fake_server_config))
        await client.start()
        client.send_no_reply("exit", {"code": 0})
        await client.drain()

        # Refused outright or failed on exit, depending on timing
        with pytest.raises(ConnectionClosed):
            await asyncio.wait_for(client.request("hang", {}), timeout=10)

        await client.stop()
        await client.start()
        try:
            assert await client.request("quickinfo", {"again": True}) == {"echo": {"again": True}}
        finally:
            await client.stop()
