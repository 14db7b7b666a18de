"""
Client for the TypeScript language server (tsserver).

Drives a tsserver child process over line-delimited JSON on stdio.

Submodules:
- transport: child process supervision and line framing
- protocol: message codec, request correlation, event routing, session state
- server: one method per tsserver command
- config: launch settings from ~/.tsclient and per-project config files
"""

# Transport layer
from tsclient.transport import (
    StdioTransport,
    Transport,
    TransportConfig,
    TransportError,
    LaunchError,
)

# Protocol layer
from tsclient.protocol import (
    TSServerClient,
    ApplicationError,
    ConnectionClosed,
    TSClientError,
    ClientEvent,
    ClientEventType,
    EventPolicy,
    SessionState,
    Request,
    Response,
    Event,
)

# Command facade
from tsclient.server import TypeScriptServer, create_server
from tsclient.config import load_server_config

__all__ = [
    # Transport
    "StdioTransport",
    "Transport",
    "TransportConfig",
    "TransportError",
    "LaunchError",
    # Protocol
    "TSServerClient",
    "ApplicationError",
    "ConnectionClosed",
    "TSClientError",
    "ClientEvent",
    "ClientEventType",
    "EventPolicy",
    "SessionState",
    "Request",
    "Response",
    "Event",
    # Facade
    "TypeScriptServer",
    "create_server",
    "load_server_config",
]
