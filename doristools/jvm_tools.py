"""JVM diagnostic tools (jmap, jstack) and the FE flame-graph profiler."""

from __future__ import annotations

import os
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping, Sequence

from doristools.console import print_info, print_warning
from doristools.tools import (
    ConfigError,
    ExecutionResult,
    GracefulExit,
    InvalidInput,
    Tool,
    ToolContext,
    ToolExecutionFailed,
)

_U32_MAX = 2**32 - 1
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")
_DEFAULT_DURATION = 10
_FE_HOME_ENV = ("DORIS_FE_HOME", "DORIS_HOME")


def run_command(
    command: Sequence[object],
    tool_name: str,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run a command, capturing its output; raise if it fails or times out."""
    args = [str(part) for part in command]
    full_env = None
    if env:
        full_env = {**os.environ, **{key: str(value) for key, value in env.items()}}
    try:
        completed = subprocess.run(
            args,
            capture_output=True,
            timeout=timeout,
            env=full_env,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ToolExecutionFailed(f"{tool_name} timed out after {timeout} seconds") from exc
    except OSError as exc:
        raise ToolExecutionFailed(f"Failed to execute {tool_name}: {exc}") from exc
    if completed.returncode != 0:
        stderr = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
        raise ToolExecutionFailed(
            f"{tool_name} failed with exit code {completed.returncode}: {stderr}"
        )
    return completed


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def _write_output(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise ToolExecutionFailed(f"Failed to write {path}: {exc}") from exc


class JmapDumpTool(Tool):
    """Write a heap dump of live objects."""

    name = "jmap-dump"
    description = "Generate heap dump (.hprof)"

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        output_dir = context.ensure_output_dir()
        output_path = output_dir / f"jmap_dump_{pid}_{_timestamp()}.hprof"
        command = [context.jmap_path(), f"-dump:live,file={output_path}", pid]
        run_command(command, self.name, context.timeout_seconds)
        return ExecutionResult(
            output_path,
            f"Heap dump completed successfully (timeout: {context.timeout_seconds}s)",
        )


class JmapHistoTool(Tool):
    """Write a histogram of live objects."""

    name = "jmap-histo"
    description = "Generate histogram (.log)"

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        output_dir = context.ensure_output_dir()
        output_path = output_dir / f"jmap_histo_{pid}_{_timestamp()}.log"
        completed = run_command([context.jmap_path(), "-histo:live", pid], self.name)
        _write_output(output_path, completed.stdout)
        return ExecutionResult(output_path, "Histogram completed successfully")


class JstackTool(Tool):
    """Write the thread stacks of a JVM."""

    name = "jstack"
    description = "Generate thread stack trace (.log)"

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        output_dir = context.ensure_output_dir()
        output_path = output_dir / f"jstack_{pid}_{_timestamp()}.log"
        completed = run_command([context.jstack_path(), pid], self.name)
        _write_output(output_path, completed.stdout)
        return ExecutionResult(output_path, "Thread stack trace completed successfully")


def _parse_u32(text: str) -> int | None:
    if not _UNSIGNED_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U32_MAX else None


def parse_duration(text: str) -> int:
    """Validate a profiling duration of 1 to 300 seconds; blank means 10."""
    stripped = text.strip() or str(_DEFAULT_DURATION)
    value = _parse_u32(stripped)
    if value is None:
        print_warning("Please enter a valid number!")
        print_info("Hint: Enter a number between 1-300, e.g., 25")
        raise GracefulExit()
    if not 0 < value <= 300:
        print_warning("Duration must be between 1 and 300 seconds!")
        print_info("Hint: Enter a number between 1-300, e.g., 25")
        raise GracefulExit()
    return value


def _prompt_duration() -> int:
    try:
        text = input(f"Enter collection duration in seconds [{_DEFAULT_DURATION}]: ")
    except EOFError as exc:
        raise InvalidInput(f"Duration input failed: {exc}") from exc
    return parse_duration(text)


class FeProfilerTool(Tool):
    """Generate an FE flame graph with the bundled profile_fe.sh script."""

    name = "fe-profiler"
    description = "Generate flame graph for FE performance analysis using async-profiler"
    requires_pid = False

    def __init__(
        self,
        fe_install_dir: Path | None = None,
        *,
        prompt: Callable[[], int] = _prompt_duration,
    ) -> None:
        self.fe_install_dir = Path(fe_install_dir) if fe_install_dir is not None else None
        self.prompt = prompt

    def _install_dir(self) -> Path:
        if self.fe_install_dir is not None:
            return self.fe_install_dir
        for variable in _FE_HOME_ENV:
            value = os.environ.get(variable)
            if value:
                return Path(value)
        raise ConfigError("FE install directory not found")

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        env_value = os.environ.get("PROFILE_SECONDS")
        if env_value is not None:
            duration = _parse_u32(env_value)
            if duration is None:
                duration = _DEFAULT_DURATION
        else:
            duration = self.prompt()
        return self.execute_with_duration(context, duration)

    def execute_with_duration(self, context: ToolContext, duration: int) -> ExecutionResult:
        """Run the profiler script for ``duration`` seconds."""
        script = self._install_dir() / "bin" / "profile_fe.sh"
        if not script.exists():
            raise ConfigError(
                f"profile_fe.sh not found at {script}. Please ensure Doris version is 2.1.4+"
            )
        run_command(
            ["bash", script],
            self.name,
            context.timeout_seconds,
            {"PROFILE_SECONDS": str(duration)},
        )
        return ExecutionResult(
            Path(), f"Flame graph generated successfully (duration: {duration}s)."
        )