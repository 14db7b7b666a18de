"""Protocol error types."""

from dataclasses import dataclass

from tsclient.protocol.messages import Response


class TSClientError(Exception):
    """Base class for errors surfaced by the tsserver client."""

    pass


@dataclass(eq=False)
class ApplicationError(TSClientError):
    """
    The server answered a request with ``success: false``.

    Only the caller awaiting that request sees this error; other
    in-flight requests are unaffected.
    """

    message: str
    command: str | None = None
    request_seq: int | None = None

    def __post_init__(self):
        super().__init__(self.message)

    @classmethod
    def from_response(cls, response: Response, command: str | None = None) -> "ApplicationError":
        """Create from a failed response."""
        return cls(
            message=response.message or "Request failed without a message",
            command=response.command or command,
            request_seq=response.request_seq,
        )

    def __str__(self) -> str:
        if self.command:
            return f"{self.command} failed: {self.message}"
        return self.message


@dataclass(eq=False)
class ConnectionClosed(TSClientError):
    """
    The server session ended while a request was pending, or a request
    was attempted outside a running session.
    """

    reason: str
    command: str | None = None
    request_seq: int | None = None
    returncode: int | None = None

    def __post_init__(self):
        super().__init__(self.reason)

    def __str__(self) -> str:
        base = f"Connection to tsserver closed: {self.reason}"
        if self.command is not None:
            base += f" (pending {self.command}, seq={self.request_seq})"
        if self.returncode is not None:
            base += f" [returncode={self.returncode}]"
        return base


class MalformedMessage(TSClientError):
    """A line could not be classified as a response or an event."""

    pass
