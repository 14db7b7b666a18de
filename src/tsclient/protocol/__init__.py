"""
tsserver Protocol Core.

Implements line-delimited JSON message encoding, request/response
correlation, event routing with diagnostic batching, and the session
state machine.
"""

from tsclient.protocol.messages import (
    Request,
    Response,
    Event,
    Malformed,
    IncomingMessage,
)
from tsclient.protocol.codec import (
    encode_request,
    decode_request,
    decode_message,
)
from tsclient.protocol.errors import (
    TSClientError,
    ApplicationError,
    ConnectionClosed,
    MalformedMessage,
)
from tsclient.protocol.correlator import RequestCorrelator, PendingRequest
from tsclient.protocol.events import (
    ClientEvent,
    ClientEventType,
    EventDispatcher,
    EventPolicy,
    DEFAULT_EVENT_POLICIES,
)
from tsclient.protocol.state import (
    SessionState,
    SessionStateMachine,
    InvalidStateTransition,
)
from tsclient.protocol.client import TSServerClient

__all__ = [
    # Messages
    "Request",
    "Response",
    "Event",
    "Malformed",
    "IncomingMessage",
    # Codec
    "encode_request",
    "decode_request",
    "decode_message",
    # Errors
    "TSClientError",
    "ApplicationError",
    "ConnectionClosed",
    "MalformedMessage",
    # Correlation
    "RequestCorrelator",
    "PendingRequest",
    # Events
    "ClientEvent",
    "ClientEventType",
    "EventDispatcher",
    "EventPolicy",
    "DEFAULT_EVENT_POLICIES",
    # State
    "SessionState",
    "SessionStateMachine",
    "InvalidStateTransition",
    # Client
    "TSServerClient",
]
