"""tsserver wire message types."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Request:
    """
    Outgoing request message.

    Written to the server exactly once. Whether a response is expected
    depends on the command, not on the message itself.
    """

    seq: int
    command: str
    arguments: Any = None
    type: str = "request"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "seq": self.seq,
            "type": self.type,
            "command": self.command,
            "arguments": self.arguments,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Request":
        """Create from JSON dict."""
        return cls(
            seq=data["seq"],
            command=data["command"],
            arguments=data.get("arguments"),
        )

    def __str__(self) -> str:
        return f"Request({self.command}, seq={self.seq})"


@dataclass(frozen=True)
class Response:
    """
    Response to a previously sent request.

    ``message`` is only set when ``success`` is false.
    """

    request_seq: int
    success: bool
    body: Any = None
    message: str | None = None
    command: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Response":
        """Create from JSON dict."""
        message = data.get("message")
        return cls(
            request_seq=data["request_seq"],
            success=data.get("success") is True,
            body=data.get("body"),
            message=message if isinstance(message, str) else None,
            command=data.get("command"),
        )

    def __str__(self) -> str:
        if self.success:
            return f"Response(request_seq={self.request_seq}, success)"
        return f"Response(request_seq={self.request_seq}, error={self.message!r})"


@dataclass(frozen=True)
class Event:
    """Out-of-band event pushed by the server."""

    event: str
    body: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Create from JSON dict."""
        return cls(event=data["event"], body=data.get("body"))

    def __str__(self) -> str:
        return f"Event({self.event})"


@dataclass(frozen=True)
class Malformed:
    """A line that is not a protocol message. Dropped by the reader."""

    line: str
    reason: str

    def __str__(self) -> str:
        return f"Malformed({self.reason})"


IncomingMessage = Response | Event | Malformed
