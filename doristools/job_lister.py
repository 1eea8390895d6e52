"""Listing and selection of Routine Load jobs, with a partition lag report."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from doristools.console import (
    print_info,
    print_success,
    print_warning,
    prompt_non_empty,
)
from doristools.fs_utils import ensure_dir_exists
from doristools.routine_load import (
    RoutineLoadJob,
    RoutineLoadJobManager,
    parse_routine_load_output,
)
from doristools.selector import InteractiveSelector, KeyPress, read_key
from doristools.tools import (
    CliError,
    ExecutionResult,
    GracefulExit,
    Tool,
    ToolContext,
    ToolExecutionFailed,
)

PartitionRow = tuple[str, "str | None", int]

_NO_JOBS_MARKER = "No Routine Load jobs found in database"
_UNKNOWN_DB_MARKER = "Unknown database"
_TABLE_TOP = "┌─────────────┬─────────────┬─────────────┐\n"
_TABLE_HEAD = "│  Partition  │   Progress  │     Lag     │\n"
_TABLE_MID = "├─────────────┼─────────────┼─────────────┤\n"
_TABLE_BOTTOM = "└─────────────┴─────────────┴─────────────┘\n"
_NO_DATA = "│               (no data)               │\n"
_RECOVERY_OPTIONS = ("Choose another database", "Back to Routine Load menu")


def build_partition_rows(
    progress: Mapping[str, str] | None, lag: Mapping[str, int] | None
) -> list[PartitionRow]:
    """Join progress and lag per partition, sorted by lag, largest first."""
    progress = progress or {}
    lag = lag or {}
    keys = list(progress)
    keys.extend(k for k in lag if k not in progress)
    rows = [(part, progress.get(part), lag.get(part, 0)) for part in keys]
    rows.sort(key=lambda row: row[2], reverse=True)
    return rows


def _table_row(row: PartitionRow) -> str:
    part, prog, lag_v = row
    prog_s = prog if prog is not None else "N/A"
    return f"│ {part:>11} │ {prog_s:>11} │ {lag_v:>11} │\n"


def _table_header(title: str) -> str:
    return f"{title}\n{_TABLE_TOP}{_TABLE_HEAD}{_TABLE_MID}"


def format_partitions_overview(
    rows: Iterable[PartitionRow], top_n: int, bottom_n: int
) -> str:
    """Tables of the partitions with the largest and the smallest non-zero lag."""
    nonzero = [row for row in rows if row[2] > 0]
    parts = [_table_header("Top by lag:")]

    nonzero.sort(key=lambda row: row[2], reverse=True)
    top = nonzero[:top_n]
    parts.extend(_table_row(row) for row in top)
    if not top:
        parts.append(_NO_DATA)
    parts.append(_TABLE_BOTTOM)

    parts.append(_table_header("Bottom by lag:"))
    nonzero.sort(key=lambda row: row[2])
    parts.extend(_table_row(row) for row in nonzero[: min(bottom_n, len(nonzero))])
    parts.append(_TABLE_BOTTOM)
    return "".join(parts)


def write_full_partitions_file(
    rows: Iterable[PartitionRow], job_id: str, base_dir: Path
) -> Path:
    """Write every partition row as tab-separated text; returns the file path."""
    file_path = Path(base_dir) / f"routine_load_partitions_{job_id}.txt"
    ensure_dir_exists(file_path)
    lines = ["Partition\tProgress\tLag\n"]
    for part, prog, lag_v in rows:
        prog_s = prog if prog is not None else "N/A"
        lines.append(f"{part}\t{prog_s}\t{lag_v}\n")
    try:
        file_path.write_text("".join(lines), encoding="utf-8")
    except OSError as exc:
        raise ToolExecutionFailed(f"Write failed: {exc}") from exc
    return file_path


def generate_selection_report(job: RoutineLoadJob, output_dir: Path) -> str:
    """Describe the selected job; saves a full partition listing when lag is known."""
    lines = [
        "Routine Load Job Selection Report\n",
        "=================================\n\n",
        f"Selected Job ID: {job.id}\n",
        f"Job Name: {job.name}\n",
        f"State: {job.state}\n",
        f"Database: {job.db_name}\n",
        f"Table: {job.table_name}\n",
        f"Create Time: {job.create_time}\n",
    ]
    if job.pause_time is not None:
        lines.append(f"Pause Time: {job.pause_time}\n")

    if job.statistic is not None:
        stat = job.statistic
        lines.append("\nStatistics:\n")
        lines.append(f"  Loaded Rows: {stat.loaded_rows}\n")
        lines.append(f"  Error Rows: {stat.error_rows}\n")
        lines.append(f"  Received Bytes: {stat.received_bytes}\n")

    if job.lag is not None:
        rows = build_partition_rows(job.progress, job.lag)
        if rows:
            nonzero_count = sum(1 for row in rows if row[2] > 0)
            zero_count = len(rows) - nonzero_count
            lines.append("\nPartitions Overview (non-zero lags only):\n")
            lines.append(format_partitions_overview(rows, 30, 20))
            lines.append(
                f"non-zero-lag: {nonzero_count}, zero-lag: {zero_count}, "
                f"total: {len(rows)}\n"
            )
            try:
                path = write_full_partitions_file(rows, job.id, output_dir)
            except CliError as exc:
                lines.append(f"Failed to save full partitions file: {exc}\n")
            else:
                lines.append(f"Full partitions saved to: {path}\n")

    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    lines.append(f"\nSelection Time: {now}\n")
    return "".join(lines)


def format_job_list(jobs: Sequence[RoutineLoadJob]) -> list[str]:
    """Lines listing the jobs; the last line is a summary by state."""
    lines = ["", "Routine Load Jobs in Database:", "=" * 100]
    lines.extend(
        f"ID: {job.id} | Name: {job.name} | State: {job.state} | "
        f"CreateTime: {job.create_time}"
        for job in jobs
    )
    lines.extend(["-" * 100, f"Total jobs found: {len(jobs)}", "=" * 100])

    def count(state: str) -> int:
        return sum(1 for job in jobs if job.state == state)

    lines.append(
        f"Summary: {len(jobs)} total jobs ({count('RUNNING')} running, "
        f"{count('PAUSED')} paused, {count('STOPPED')} stopped)"
    )
    return lines


def _recovery_menu(
    database: str, unknown_database: bool, key_reader: Callable[[], KeyPress]
) -> bool:
    """Ask what to do next; True means choose another database."""
    print_info("")
    if unknown_database:
        print_warning(f"Unknown database '{database}'")
        print_info("Please verify the database name or choose another one.")
    else:
        print_warning(f"No Routine Load jobs found in database '{database}'")
        print_info("This could mean:")
        print_info("  - The database name is incorrect")
        print_info("  - No Routine Load jobs have been created")
    selector = InteractiveSelector(
        list(_RECOVERY_OPTIONS), "What would you like to do?", key_reader=key_reader
    )
    return selector.select() == _RECOVERY_OPTIONS[0]


class RoutineLoadJobLister(Tool):
    """List the Routine Load jobs of a database and remember the chosen one."""

    name = "routine_load_job_lister"
    description = "List and select Routine Load jobs"
    requires_pid = False

    def __init__(
        self,
        run_query: Callable[[str], str],
        *,
        list_databases: Callable[[], list[str]] | None = None,
        job_manager: RoutineLoadJobManager | None = None,
        key_reader: Callable[[], KeyPress] = read_key,
        recovery: Callable[[str, bool], bool] | None = None,
    ) -> None:
        self.run_query = run_query
        self.list_databases = list_databases
        self.job_manager = job_manager if job_manager is not None else RoutineLoadJobManager()
        self.key_reader = key_reader
        self.recovery = (
            recovery
            if recovery is not None
            else partial(_recovery_menu, key_reader=key_reader)
        )

    def _prompt_database_name(self) -> str:
        if self.list_databases is not None:
            try:
                databases = self.list_databases()
            except CliError:
                databases = []
            if databases:
                print_info("Select a database:")
                selector = InteractiveSelector(
                    databases, "Available databases:", 30, key_reader=self.key_reader
                )
                try:
                    return selector.select()
                except CliError:
                    pass
        print_info("Please enter the database name:")
        return prompt_non_empty("Database name")

    def query_jobs(self, database: str) -> list[RoutineLoadJob]:
        """Fetch and parse the Routine Load jobs of ``database``."""
        output = self.run_query(f"USE `{database}`; SHOW ALL ROUTINE LOAD \\G")
        jobs = parse_routine_load_output(output)
        if not jobs:
            raise ToolExecutionFailed(f"{_NO_JOBS_MARKER} '{database}'")
        return jobs

    def _display_jobs(self, jobs: Sequence[RoutineLoadJob]) -> None:
        *lines, summary = format_job_list(jobs)
        for line in lines:
            print_info(line)
        print(summary)

    def _select_job(self, jobs: Sequence[RoutineLoadJob]) -> RoutineLoadJob:
        selector = InteractiveSelector(
            list(jobs), "Select a Routine Load job:", key_reader=self.key_reader
        )
        return selector.select()

    def execute(self, context: ToolContext, pid: int) -> ExecutionResult:
        database = self._prompt_database_name()
        while True:
            try:
                jobs = self.query_jobs(database)
            except ToolExecutionFailed as exc:
                message = str(exc)
                if _NO_JOBS_MARKER in message:
                    unknown = False
                elif _UNKNOWN_DB_MARKER in message:
                    unknown = True
                else:
                    raise
                if not self.recovery(database, unknown):
                    raise GracefulExit() from exc
                database = self._prompt_database_name()
                continue

            self._display_jobs(jobs)
            job = self._select_job(jobs)
            self.job_manager.save_job_id(job.id, job.name, database)
            self.job_manager.update_job_cache([job])
            print_success(f"Job ID '{job.id}' saved in memory")

            report = generate_selection_report(job, context.output_dir)
            print_info("")
            print_info(report)
            return ExecutionResult(
                context.output_dir,
                f"Job ID '{job.id}' selected and saved in memory",
            )