"""Transport layer types and configuration."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

# tsserver answers with whole project graphs on one line; asyncio's default
# 64 KiB line limit is far too small for that.
DEFAULT_READ_LIMIT = 16 * 1024 * 1024


class TransportEventType(Enum):
    """Types of transport events for observability."""

    STARTING = auto()
    STARTED = auto()
    STOPPING = auto()
    STOPPED = auto()
    MESSAGE_SENT = auto()
    ERROR = auto()


@dataclass
class TransportEvent:
    """Event emitted by transport for observability."""

    type: TransportEventType
    timestamp: float
    data: dict[str, Any] | None = None
    error: Exception | None = None

    def __str__(self) -> str:
        base = f"[{self.type.name}]"
        if self.data:
            base += f" {self.data}"
        if self.error:
            base += f" error={self.error}"
        return base


@dataclass
class TransportConfig:
    """Configuration for launching the tsserver child process."""

    command: str = "tsserver"
    """Executable to launch (path or name resolved through PATH)."""

    args: list[str] = field(default_factory=list)
    """Extra command line arguments passed to the executable."""

    cwd: str | None = None
    """Working directory of the child; defaults to the current one."""

    env: dict[str, str] | None = None
    """Variables merged over os.environ for the child."""

    read_limit: int = DEFAULT_READ_LIMIT
    """Maximum length in bytes of a single line read from the child."""

    stop_timeout: float = 5.0
    """Seconds to wait for a graceful exit before killing the child."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.command:
            raise ValueError("command is required")
        if self.read_limit <= 0:
            raise ValueError("read_limit must be positive")
        if self.stop_timeout <= 0:
            raise ValueError("stop_timeout must be positive")

    @property
    def argv(self) -> list[str]:
        """Full command line as configured (before platform wrapping)."""
        return [self.command, *self.args]
