"""Routine Load analysis of FE logs: per-commit performance and per-minute traffic."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Iterable

from doristools.console import fmt_int, print_info, prompt_number_with_default
from doristools.fs_utils import collect_fe_logs
from doristools.log_parser import FeLogParser, LogCommitEntry, scan_file
from doristools.routine_load import NO_JOB_ID, RoutineLoadJobManager
from doristools.tools import (
    ConfigError,
    ExecutionResult,
    InvalidInput,
    Tool,
    ToolContext,
    ToolExecutionFailed,
)

_PERF_EMPTY = "No matching commit entries found in FE logs"
_TRAFFIC_COLLECT_EMPTY = "No matching entries found"
_TRAFFIC_WINDOW_EMPTY = "No entries in selected window"
_HEADERS = ("Time", "ms", "loadedRows", "receivedBytes", "txnId")
_LOG_DIR_ENV = "DORIS_LOG_DIR"


def collect_entries(log_dir: Path, job_id: str, empty_message: str) -> list[LogCommitEntry]:
    """Scan every FE log in ``log_dir`` for commit entries of ``job_id``."""
    parser = FeLogParser()
    entries: list[LogCommitEntry] = []
    for path in collect_fe_logs(Path(log_dir)):
        entries.extend(scan_file(parser, path, job_id))
    if not entries:
        raise ToolExecutionFailed(empty_message)
    return entries


def filter_by_window(
    entries: Iterable[LogCommitEntry], minutes: int, empty_message: str
) -> list[LogCommitEntry]:
    """Keep entries within ``minutes`` of the newest entry's timestamp."""
    entries = list(entries)
    if not entries:
        raise ToolExecutionFailed(empty_message)
    latest = max(e.timestamp for e in entries)
    window_start = latest - timedelta(minutes=minutes)
    kept = [e for e in entries if e.timestamp >= window_start]
    if not kept:
        raise ToolExecutionFailed(empty_message)
    return kept


def deduplicate_entries(entries: Iterable[LogCommitEntry]) -> list[LogCommitEntry]:
    """Merge entries with equal time and counters, preferring one with a transaction id."""
    unique: dict[tuple, LogCommitEntry] = {}
    for entry in entries:
        key = (
            entry.timestamp,
            entry.loaded_rows or 0,
            entry.received_bytes or 0,
            entry.task_execution_ms or 0,
        )
        existing = unique.get(key)
        if existing is None:
            unique[key] = entry
        elif existing.transaction_id is None and entry.transaction_id is not None:
            unique[key] = entry
    if not unique:
        raise ToolExecutionFailed(_PERF_EMPTY)
    return list(unique.values())


@dataclass
class PerformanceStats:
    """Running count, sum, minimum and maximum of commit metrics."""

    count: int = 0
    sum_ms: int = 0
    min_ms: int | None = None
    max_ms: int = 0
    sum_rows: int = 0
    min_rows: int | None = None
    max_rows: int = 0
    sum_bytes: int = 0
    min_bytes: int | None = None
    max_bytes: int = 0

    def update(self, entry: LogCommitEntry) -> None:
        """Account for one commit entry; missing values count as 0."""
        ms = entry.task_execution_ms or 0
        rows = entry.loaded_rows or 0
        size = entry.received_bytes or 0
        self.count += 1
        self.sum_ms += ms
        self.min_ms = ms if self.min_ms is None else min(self.min_ms, ms)
        self.max_ms = max(self.max_ms, ms)
        self.sum_rows += rows
        self.min_rows = rows if self.min_rows is None else min(self.min_rows, rows)
        self.max_rows = max(self.max_rows, rows)
        self.sum_bytes += size
        self.min_bytes = size if self.min_bytes is None else min(self.min_bytes, size)
        self.max_bytes = max(self.max_bytes, size)

    def summary_lines(self) -> list[str]:
        """Summary lines with averages, minima and maxima; empty when nothing was seen."""
        if self.count == 0:
            return []
        return [
            f"count={self.count}  avg_ms={self.sum_ms // self.count}  "
            f"min_ms={self.min_ms or 0}  max_ms={self.max_ms}",
            f"          avg_rows={fmt_int(self.sum_rows // self.count)}  "
            f"min_rows={fmt_int(self.min_rows or 0)}  max_rows={fmt_int(self.max_rows)}",
            f"          avg_bytes={fmt_int(self.sum_bytes // self.count)}  "
            f"min_bytes={fmt_int(self.min_bytes or 0)}  max_bytes={fmt_int(self.max_bytes)}",
        ]


def _format_row(cells: tuple[str, ...], widths: list[int]) -> str:
    return (
        f" {cells[0]:<{widths[0]}} | {cells[1]:>{widths[1]}} | {cells[2]:>{widths[2]}}"
        f" | {cells[3]:>{widths[3]}} | {cells[4]:<{widths[4]}}"
    )


def format_performance_table(entries: Iterable[LogCommitEntry]) -> list[str]:
    """Per-commit table in time order, followed by the summary lines."""
    ordered = sorted(entries, key=lambda e: e.timestamp)
    stats = PerformanceStats()
    rows: list[tuple[str, ...]] = []
    for entry in ordered:
        rows.append(
            (
                entry.timestamp.strftime("%H:%M:%S"),
                str(entry.task_execution_ms or 0),
                fmt_int(entry.loaded_rows or 0),
                fmt_int(entry.received_bytes or 0),
                entry.transaction_id if entry.transaction_id is not None else "-",
            )
        )
        stats.update(entry)

    widths = [max(len(cells[i]) for cells in (_HEADERS, *rows)) for i in range(len(_HEADERS))]
    separator = "+".join("-" * (w + 2) for w in widths)

    lines = [separator, _format_row(_HEADERS, widths), separator]
    lines.extend(_format_row(cells, widths) for cells in rows)
    lines.append(separator)
    lines.extend(stats.summary_lines())
    return lines


def aggregate_per_minute(entries: Iterable[LogCommitEntry]) -> dict[str, int]:
    """Sum loaded rows per ``HH:MM`` minute, keys in ascending order."""
    totals: dict[str, int] = {}
    for entry in entries:
        key = entry.timestamp.strftime("%H:%M")
        totals[key] = totals.get(key, 0) + (entry.loaded_rows or 0)
    return dict(sorted(totals.items()))


def format_traffic_report(per_minute: dict[str, int]) -> list[str]:
    """Lines listing per-minute loaded rows with totals and the average."""
    total = sum(per_minute.values())
    average = total // len(per_minute) if per_minute else 0
    lines = ["", "Per-minute loadedRows (ascending time)", "-" * 40]
    lines.extend(f"{minute} loadedRows={rows}" for minute, rows in per_minute.items())
    lines.extend(
        [
            "-" * 40,
            f"Total minutes: {len(per_minute)}",
            f"Total loadedRows: {total}",
            f"Average per minute: {average}",
        ]
    )
    return lines


class _LogAnalysisTool(Tool):
    requires_pid = False
    default_minutes = 30

    def __init__(
        self,
        log_dir: Path | None = None,
        *,
        minutes: int | None = None,
        job_manager: RoutineLoadJobManager | None = None,
    ) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.minutes = minutes
        self.job_manager = job_manager if job_manager is not None else RoutineLoadJobManager()

    def _job_id(self) -> str:
        job_id = self.job_manager.get_current_job_id()
        if job_id is None:
            raise InvalidInput(NO_JOB_ID)
        return job_id

    def _resolve_log_dir(self) -> Path:
        if self.log_dir is not None:
            return self.log_dir
        env_dir = os.environ.get(_LOG_DIR_ENV)
        if env_dir:
            return Path(env_dir)
        raise ConfigError("FE log directory is not configured")

    def _window(self) -> int:
        if self.minutes is not None:
            return max(self.minutes, 1)
        return prompt_number_with_default("Analyze recent minutes", self.default_minutes, 1)


class RoutineLoadPerformanceAnalyzer(_LogAnalysisTool):
    """Per-commit rows, bytes and time of the selected job, from FE logs."""

    name = "routine_load_performance_analyzer"
    description = "Analyze per-commit rows/bytes/time from FE logs"
    default_minutes = 30

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        job_id = self._job_id()
        log_dir = self._resolve_log_dir()
        minutes = self._window()
        print_info(f"Analyzing FE logs in {log_dir} for job {job_id} (last {minutes} min)...")

        entries = collect_entries(log_dir, job_id, _PERF_EMPTY)
        entries = filter_by_window(entries, minutes, _PERF_EMPTY)
        entries = deduplicate_entries(entries)

        print_info("")
        print_info("Per-commit stats")
        for line in format_performance_table(entries):
            print_info(line)
        return ExecutionResult(Path("console_output"), "Performance analysis completed")


class RoutineLoadTrafficMonitor(_LogAnalysisTool):
    """Per-minute loaded rows of the selected job, from FE logs."""

    name = "routine_load_traffic_monitor"
    description = "Aggregate per-minute loadedRows from FE logs"
    default_minutes = 60

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        job_id = self._job_id()
        log_dir = self._resolve_log_dir()
        minutes = self._window()
        print_info(f"Analyzing traffic in {log_dir} for job {job_id} (last {minutes} min)...")

        entries = collect_entries(log_dir, job_id, _TRAFFIC_COLLECT_EMPTY)
        entries = filter_by_window(entries, minutes, _TRAFFIC_WINDOW_EMPTY)
        for line in format_traffic_report(aggregate_per_minute(entries)):
            print_info(line)
        return ExecutionResult(Path("console_output"), "Traffic monitor completed")