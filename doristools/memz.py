"""Jemalloc and global memory reports fetched from a BE node."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from doristools.console import print_error, print_info, print_success
from doristools.tools import CliError, ConfigError, ExecutionResult, Tool, ToolContext

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024
_U64_MAX = 2**64 - 1

_SUMMARY_RE = re.compile(
    r"Allocated: (\d+), active: (\d+), metadata: (\d+).*?, resident: (\d+), "
    r"mapped: (\d+), retained: (\d+)"
)
_TCACHE_RE = re.compile(r"tcache_bytes:\s+(\d+)")
_DIRTY_RE = re.compile(r"dirty:\s+N/A\s+\d+\s+\d+\s+\d+\s+(\d+)")
_UNKNOWN = "Unknown"
_TIPS = "Tips: Ensure the BE service is running and accessible."


def format_bytes(value: int) -> str:
    """Human-readable size with the exact byte count."""
    if value >= _GB:
        return f"{value / _GB:.2f} GB ({value} bytes)"
    if value >= _MB:
        return f"{value / _MB:.2f} MB ({value} bytes)"
    if value >= _KB:
        return f"{value / _KB:.2f} KB ({value} bytes)"
    return f"{value} bytes"


def _formatted(digits: str | None) -> str:
    if digits is None or not digits.isascii():
        return _UNKNOWN
    value = int(digits)
    if value > _U64_MAX:
        return _UNKNOWN
    return format_bytes(value)


def extract_memory_metrics(html_content: str) -> tuple[str, str]:
    """Build a table of the key jemalloc metrics; returns it with the raw content."""
    names = ("allocated", "active", "metadata", "resident", "mapped", "retained")
    metrics = dict.fromkeys(names, _UNKNOWN)
    summary = _SUMMARY_RE.search(html_content)
    if summary is not None:
        for name, digits in zip(names, summary.groups()):
            metrics[name] = _formatted(digits)

    tcache = _TCACHE_RE.search(html_content)
    thread_cache = _formatted(tcache.group(1)) if tcache else _UNKNOWN
    dirty = _DIRTY_RE.search(html_content)
    dirty_pages = _formatted(dirty.group(1)) if dirty else _UNKNOWN

    rows = [
        ("Allocated", metrics["allocated"]),
        ("Active", metrics["active"]),
        ("Metadata", metrics["metadata"]),
        ("Resident", metrics["resident"]),
        ("Mapped", metrics["mapped"]),
        ("Retained", metrics["retained"]),
        ("Thread Cache", thread_cache),
        ("Dirty Pages", dirty_pages),
    ]
    lines = [
        " Key Memory Metrics:",
        "┌───────────────────┬────────────────────────────────────┐",
        "│ Metric            │ Value                              │",
        "├───────────────────┼────────────────────────────────────┤",
    ]
    lines.extend(f"│ {label:<17} │ {value:<34} │" for label, value in rows)
    lines.append("└───────────────────┴────────────────────────────────────┘")
    return "\n".join(lines), html_content


def save_html_to_file(output_dir: Path, html_content: str, file_prefix: str) -> Path:
    """Save the page under a timestamped name in ``output_dir``."""
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Cannot create directory: {exc}") from exc
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    output_path = output_dir / f"{file_prefix}_{timestamp}.html"
    try:
        output_path.write_text(html_content, encoding="utf-8")
    except OSError as exc:
        raise CliError(str(exc)) from exc
    return output_path


class _MemzBase(Tool):
    requires_pid = False
    endpoint = ""
    file_prefix = ""
    label = ""
    fetch_message = ""
    success_message = ""
    failure_context = ""

    def __init__(self, fetch: Callable[[str], str]) -> None:
        self.fetch = fetch

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        print_info(self.fetch_message)
        try:
            html_content = self.fetch(self.endpoint)
        except CliError as exc:
            print_error(f"{self.failure_context}: {exc}.")
            print_info(_TIPS)
            raise

        table, full_html = extract_memory_metrics(html_content)
        output_path = save_html_to_file(context.output_dir, full_html, self.file_prefix)

        print_success(self.success_message)
        print()
        print_info("Results:")
        print(table)
        return ExecutionResult(output_path, f"{self.label} saved to {output_path}")


class MemzTool(_MemzBase):
    """Jemalloc memory usage of a BE node."""

    name = "memz"
    description = "Analyze Jemalloc memory usage in BE"
    endpoint = "/memz"
    file_prefix = "memz"
    label = "Jemalloc memory profile"
    fetch_message = "Fetching Jemalloc memory usage from BE..."
    success_message = "Memory metrics fetched successfully!"
    failure_context = "Failed to fetch memory metrics"

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        """Fetch /memz, print the key metrics and save the page."""
        return super().execute(context, pid)


class MemzGlobalTool(_MemzBase):
    """Global memory usage of a BE node."""

    name = "memz-global"
    description = "Analyze global memory usage in BE"
    endpoint = "/memz?type=global"
    file_prefix = "memz_global"
    label = "Global memory profile"
    fetch_message = "Fetching global memory usage from BE..."
    success_message = "Global memory metrics fetched successfully!"
    failure_context = "Failed to fetch global memory metrics"

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        """Fetch the global /memz page, print the key metrics and save it."""
        return super().execute(context, pid)