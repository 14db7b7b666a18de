"""Encoding and decoding of line-delimited tsserver messages."""

from __future__ import annotations

import os
from typing import Any

import orjson

from tsclient.protocol.errors import MalformedMessage
from tsclient.protocol.messages import (
    Event,
    IncomingMessage,
    Malformed,
    Request,
    Response,
)

LINE_TERMINATOR = os.linesep.encode("ascii")


def encode_request(request: Request) -> bytes:
    """
    Serialize a request as one protocol line.

    JSON string escaping keeps newlines inside the arguments off the
    wire, so the result contains exactly one line terminator.

    Raises:
        TypeError: If the arguments are not JSON-serializable.
    """
    return orjson.dumps(request.to_dict()) + LINE_TERMINATOR


def decode_request(line: str | bytes) -> Request:
    """
    Parse a line produced by :func:`encode_request`.

    Raises:
        MalformedMessage: If the line is not a request.
    """
    try:
        data = orjson.loads(line)
    except orjson.JSONDecodeError as e:
        raise MalformedMessage(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict) or data.get("type") != "request":
        raise MalformedMessage("Not a request message")
    try:
        return Request.from_dict(data)
    except KeyError as e:
        raise MalformedMessage(f"Request missing field {e}") from e


def decode_message(line: str | bytes) -> IncomingMessage:
    """
    Parse one line from the server into a Response, Event or Malformed.

    Never raises: anything that is not a recognizable protocol message
    comes back as :class:`Malformed`.
    """
    if isinstance(line, bytes):
        text = line.decode("utf-8", errors="replace")
    else:
        text = line

    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError as e:
        return Malformed(line=text, reason=f"Invalid JSON: {e}")

    try:
        return _classify(data)
    except MalformedMessage as e:
        return Malformed(line=text, reason=str(e))


def _classify(data: Any) -> Response | Event:
    """Pick the message shape from the discriminating fields."""
    if not isinstance(data, dict):
        raise MalformedMessage(f"Expected a JSON object, got {type(data).__name__}")

    if is_response(data):
        return Response.from_dict(data)
    if is_event(data):
        return Event.from_dict(data)
    raise MalformedMessage("Cannot determine message type")


def is_response(data: dict[str, Any]) -> bool:
    """Check if message is a response (carries an integer request_seq)."""
    seq = data.get("request_seq")
    return isinstance(seq, int) and not isinstance(seq, bool)


def is_event(data: dict[str, Any]) -> bool:
    """Check if message is an event (type "event" with a name)."""
    return data.get("type") == "event" and isinstance(data.get("event"), str)
