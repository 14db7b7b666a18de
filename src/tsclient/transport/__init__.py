"""
tsserver Transport Layer.

Runs the server as a child process and frames its stdout into lines.
"""

from tsclient.transport.types import TransportConfig, TransportEvent, TransportEventType
from tsclient.transport.base import Transport, TransportError, LaunchError
from tsclient.transport.framing import iter_lines, looks_like_json_object
from tsclient.transport.stdio import StdioTransport

__all__ = [
    "Transport",
    "TransportConfig",
    "TransportEvent",
    "TransportEventType",
    "TransportError",
    "LaunchError",
    "StdioTransport",
    "iter_lines",
    "looks_like_json_object",
]
