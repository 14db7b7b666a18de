"""Abstract base transport and error types."""

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable

from tsclient.transport.types import TransportConfig, TransportEvent

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class LaunchError(TransportError):
    """The child process could not be spawned."""

    pass


class Transport(ABC):
    """
    Abstract base class for tsserver transports.

    A transport owns the child process: it starts and stops it, accepts
    encoded request bytes for its stdin and exposes its stdout as a
    sequence of candidate message lines. It knows nothing about sequence
    numbers or events.
    """

    def __init__(self, config: TransportConfig):
        self.config = config
        self._event_handlers: list[Callable[[TransportEvent], None]] = []

    def on_event(self, handler: Callable[[TransportEvent], None]) -> None:
        """
        Register an event handler for transport events.

        Args:
            handler: Callback invoked when transport events occur.
        """
        self._event_handlers.append(handler)

    def _emit_event(self, event: TransportEvent) -> None:
        """Emit an event to all registered handlers."""
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Transport event handler failed for {event.type.name}")

    @abstractmethod
    async def start(self) -> None:
        """
        Launch the child process and connect its pipes.

        Returns once the process and pipes exist, not once the server
        has finished loading.

        Raises:
            LaunchError: If the executable cannot be spawned.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """
        Terminate the child process and release its pipes.

        This method should be safe to call multiple times.
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Queue encoded bytes for the child's stdin without blocking.

        Raises:
            TransportError: If the process is not running.
        """
        pass

    @abstractmethod
    async def drain(self) -> None:
        """Wait until queued writes have been handed to the pipe."""
        pass

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """
        Async iterator over candidate message lines from the child.

        The iterator ends when the child's stdout closes.
        """
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """
        Check if the child process is currently running.

        Returns:
            True if started and not yet exited.
        """
        pass

    @property
    def returncode(self) -> int | None:
        """Exit status of the last child process, if it has exited."""
        return None

    async def __aenter__(self) -> "Transport":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
