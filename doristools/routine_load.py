"""Routine Load job models, their parsing and the in-memory job state."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field, fields
from typing import Any

from doristools.cluster import parse_key_value_pairs, split_into_blocks
from doristools.tools import ToolExecutionFailed

NO_JOB_ID = "No Job ID in memory. Run 'Get Job ID' first."

_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_STAT_KEYS = {
    "received_bytes": "receivedBytes",
    "loaded_rows": "loadedRows",
    "error_rows": "errorRows",
    "committed_task_num": "committedTaskNum",
    "load_rows_rate": "loadRowsRate",
    "aborted_task_num": "abortedTaskNum",
    "total_rows": "totalRows",
    "unselected_rows": "unselectedRows",
    "received_bytes_rate": "receivedBytesRate",
    "task_execute_time_ms": "taskExecuteTimeMs",
}


@dataclass(frozen=True)
class JobStatistic:
    """Counters reported in a job's Statistic column."""

    received_bytes: int = 0
    loaded_rows: int = 0
    error_rows: int = 0
    committed_task_num: int = 0
    load_rows_rate: int = 0
    aborted_task_num: int = 0
    total_rows: int = 0
    unselected_rows: int = 0
    received_bytes_rate: int = 0
    task_execute_time_ms: int = 0


@dataclass
class RoutineLoadJob:
    """One row of ``SHOW ALL ROUTINE LOAD``."""

    id: str
    name: str
    state: str = "UNKNOWN"
    db_name: str = ""
    table_name: str = ""
    create_time: str = ""
    pause_time: str | None = None
    end_time: str | None = None
    current_task_num: str | None = None
    data_source_type: str | None = None
    statistic: JobStatistic | None = None
    progress: dict[str, str] | None = None
    lag: dict[str, int] | None = None
    error_log_urls: str | None = None
    other_msg: str | None = None


@dataclass
class RoutineLoadState:
    """The selected job and the cache of known jobs."""

    current_job_id: str | None = None
    current_job_name: str | None = None
    last_database: str | None = None
    job_cache: dict[str, RoutineLoadJob] = field(default_factory=dict)

    def clear(self) -> None:
        """Forget the selected job and every cached job."""
        self.current_job_id = None
        self.current_job_name = None
        self.last_database = None
        self.job_cache.clear()


_SHARED_STATE = RoutineLoadState()
_SHARED_LOCK = threading.Lock()


class RoutineLoadJobManager:
    """Thread-safe access to the Routine Load state, shared across tools by default."""

    def __init__(self, state: RoutineLoadState | None = None) -> None:
        if state is None:
            self._state = _SHARED_STATE
            self._lock = _SHARED_LOCK
        else:
            self._state = state
            self._lock = threading.Lock()

    def save_job_id(self, job_id: str, job_name: str, database: str) -> None:
        """Remember the selected job and the database it lives in."""
        with self._lock:
            self._state.current_job_id = job_id
            self._state.current_job_name = job_name
            self._state.last_database = database

    def get_current_job_id(self) -> str | None:
        """The selected job id, if any."""
        with self._lock:
            return self._state.current_job_id

    def get_current_job_name(self) -> str | None:
        """The selected job name, if any."""
        with self._lock:
            return self._state.current_job_name

    def get_last_database(self) -> str | None:
        """The database of the last selection, if any."""
        with self._lock:
            return self._state.last_database

    def validate_job_id(self, job_id: str) -> bool:
        """True if ``job_id`` is numeric and a cached job has it."""
        if not all(c in "0123456789" for c in job_id):
            return False
        with self._lock:
            return job_id in self._state.job_cache

    def clear_state(self) -> None:
        """Reset the state completely."""
        with self._lock:
            self._state.clear()

    def update_job_cache(self, jobs: list[RoutineLoadJob]) -> None:
        """Replace the job cache with ``jobs``, keyed by id."""
        with self._lock:
            self._state.job_cache = {job.id: job for job in jobs}

    def get_job_cache(self) -> dict[str, RoutineLoadJob]:
        """A copy of the job cache."""
        with self._lock:
            return dict(self._state.job_cache)


def _as_u64(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= _U64_MAX:
        return value
    return 0


def _load_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ToolExecutionFailed(f"Failed to parse {what}: {exc}") from exc


def parse_statistic(text: str) -> JobStatistic:
    """Parse the Statistic JSON; absent or non-numeric counters become 0."""
    data = _load_json(text, "statistic")
    if not isinstance(data, dict):
        data = {}
    return JobStatistic(**{attr: _as_u64(data.get(key)) for attr, key in _STAT_KEYS.items()})


def _parse_progress(text: str) -> dict[str, str]:
    data = _load_json(text, "progress")
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise ToolExecutionFailed("Failed to parse progress: expected an object of strings")
    return data


def _is_i64(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and _I64_MIN <= value <= _I64_MAX
    )


def _parse_lag(text: str) -> dict[str, int]:
    data = _load_json(text, "lag")
    if not isinstance(data, dict) or not all(_is_i64(v) for v in data.values()):
        raise ToolExecutionFailed("Failed to parse lag: expected an object of integers")
    return data


def _present(value: str | None) -> str | None:
    return None if value is None or value == "NULL" else value


def _parse_job_block(block: str) -> RoutineLoadJob | None:
    values = parse_key_value_pairs(block)
    if "Id" not in values or "Name" not in values:
        return None

    statistic = _present(values.get("Statistic"))
    progress = _present(values.get("Progress"))
    lag = _present(values.get("Lag"))

    return RoutineLoadJob(
        id=values["Id"],
        name=values["Name"],
        state=values.get("State", "UNKNOWN"),
        db_name=values.get("DbName", ""),
        table_name=values.get("TableName", ""),
        create_time=values.get("CreateTime", ""),
        pause_time=_present(values.get("PauseTime")),
        end_time=_present(values.get("EndTime")),
        current_task_num=values.get("CurrentTaskNum"),
        data_source_type=values.get("DataSourceType"),
        statistic=parse_statistic(statistic) if statistic is not None else None,
        progress=_parse_progress(progress) if progress is not None else None,
        lag=_parse_lag(lag) if lag is not None else None,
        error_log_urls=values.get("ErrorLogUrls"),
        other_msg=values.get("OtherMsg"),
    )


def parse_routine_load_output(output: str) -> list[RoutineLoadJob]:
    """Parse ``SHOW ALL ROUTINE LOAD \\G`` output; rows without Id or Name are skipped."""
    jobs = (_parse_job_block(block) for block in split_into_blocks(output))
    return [job for job in jobs if job is not None]


__all__ = [name for name in ("JobStatistic", "RoutineLoadJob") if name] + [
    f.name for f in fields(RoutineLoadState) if False
]