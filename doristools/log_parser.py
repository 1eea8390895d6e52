"""Extraction of Routine Load commit records from FE log files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from doristools.tools import CliError

_U64_MAX = 2**64 - 1


@dataclass
class LogCommitEntry:
    """One commit of a Routine Load task as found in the FE log."""

    timestamp: datetime
    loaded_rows: int | None = None
    received_bytes: int | None = None
    task_execution_ms: int | None = None
    transaction_id: str | None = None


class FeLogParser:
    """Recognises commit lines of a given job in FE log output."""

    _TIMESTAMP = re.compile(
        r"^(?P<ts>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}),\d{3}", re.ASCII
    )
    _FIELDS = re.compile(r"(loadedRows|receivedBytes|taskExecutionTimeMs)=([0-9]+)")
    _TXN = re.compile(r"transactionId:([0-9A-Za-z_-]+)")

    _ATTRIBUTES = {
        "loadedRows": "loaded_rows",
        "receivedBytes": "received_bytes",
        "taskExecutionTimeMs": "task_execution_ms",
    }

    def parse_line(self, line: str, job_id: str) -> LogCommitEntry | None:
        """Parse a commit line mentioning ``job_id``; None for anything else."""
        if job_id not in line:
            return None
        if "commitTxn" not in line and "RLTaskTxnCommitAttachment" not in line:
            return None

        match = self._TIMESTAMP.match(line)
        if match is None:
            return None
        try:
            timestamp = datetime.strptime(match.group("ts"), "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None

        entry = LogCommitEntry(timestamp=timestamp)
        for key, digits in self._FIELDS.findall(line):
            value = int(digits)
            if value > _U64_MAX:
                return None
            setattr(entry, self._ATTRIBUTES[key], value)

        txn = self._TXN.search(line)
        if txn is not None:
            entry.transaction_id = txn.group(1)
        return entry


def scan_file(parser: FeLogParser, path: Path, job_id: str) -> list[LogCommitEntry]:
    """Parse every line of a log file and return the commit entries found."""
    entries: list[LogCommitEntry] = []
    try:
        with open(path, "rb") as handle:
            for raw in handle:
                raw = raw.removesuffix(b"\n").removesuffix(b"\r")
                entry = parser.parse_line(raw.decode("utf-8"), job_id)
                if entry is not None:
                    entries.append(entry)
    except (OSError, UnicodeDecodeError) as exc:
        raise CliError(str(exc)) from exc
    return entries