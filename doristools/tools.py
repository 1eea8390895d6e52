"""Core tool abstractions: errors, execution results and the tool interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path


class CliError(Exception):
    """Base class for every failure the tools report."""


class ConfigError(CliError):
    """The configuration or the filesystem layout it describes is unusable."""


class ToolExecutionFailed(CliError):
    """A tool ran but could not complete its work."""


class InvalidInput(CliError):
    """The user supplied input that cannot be used."""


class GracefulExit(CliError):
    """Leave the current operation quietly, without reporting a failure."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running a tool."""

    output_path: Path
    message: str


@dataclass
class ToolContext:
    """Settings a tool needs at run time."""

    output_dir: Path
    jdk_path: Path
    timeout_seconds: int = 60

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        self.jdk_path = Path(self.jdk_path)

    def ensure_output_dir(self) -> Path:
        """Create the output directory if needed and return it."""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Cannot create directory: {exc}") from exc
        if not self.output_dir.is_dir():
            raise ConfigError(
                f"Cannot create directory: {self.output_dir} is not a directory"
            )
        return self.output_dir

    def jmap_path(self) -> Path:
        """Path of the jmap binary inside the configured JDK."""
        return self.jdk_path / "bin" / "jmap"

    def jstack_path(self) -> Path:
        """Path of the jstack binary inside the configured JDK."""
        return self.jdk_path / "bin" / "jstack"


class Tool(abc.ABC):
    """A diagnostic tool that can be run against a process."""

    name: str = ""
    description: str = ""
    requires_pid: bool = True

    @abc.abstractmethod
    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        """Run the tool and describe what it produced."""