from datetime import datetime

import pytest

from doristools.log_parser import FeLogParser, LogCommitEntry, scan_file
from doristools.tools import CliError

JOB = "12345"
LINE = (
    "2025-08-01 14:47:21,123 INFO (thread-1) commitTxn jobId=12345 "
    "RLTaskTxnCommitAttachment [loadedRows=500, receivedBytes=40960, "
    "taskExecutionTimeMs=1500] transactionId:txn_42-a"
)


@pytest.fixture
def parser():
    return FeLogParser()


def test_parse_full_line(parser):
    entry = parser.parse_line(LINE, JOB)
    assert entry == LogCommitEntry(
        timestamp=datetime(2025, 8, 1, 14, 47, 21),
        loaded_rows=500,
        received_bytes=40960,
        task_execution_ms=1500,
        transaction_id="txn_42-a",
    )


def test_other_job_is_ignored(parser):
    assert parser.parse_line(LINE, "99999") is None


def test_line_without_commit_marker_is_ignored(parser):
    line = "2025-08-01 14:47:21,123 INFO scheduling task for job 12345"
    assert parser.parse_line(line, JOB) is None


def test_line_without_timestamp_is_ignored(parser):
    assert parser.parse_line("commitTxn 12345 loadedRows=1", JOB) is None


def test_invalid_date_is_ignored(parser):
    line = "2025-13-45 14:47:21,123 commitTxn 12345 loadedRows=1"
    assert parser.parse_line(line, JOB) is None


def test_overflowing_number_discards_line(parser):
    line = "2025-08-01 14:47:21,123 commitTxn 12345 loadedRows=99999999999999999999999"
    assert parser.parse_line(line, JOB) is None


def test_missing_fields_stay_none(parser):
    line = "2025-08-01 14:47:21,123 commitTxn 12345 loadedRows=7"
    entry = parser.parse_line(line, JOB)
    assert entry.loaded_rows == 7
    assert entry.received_bytes is None
    assert entry.task_execution_ms is None
    assert entry.transaction_id is None


def test_scan_file_collects_matching_lines(tmp_path, parser):
    log = tmp_path / "fe.log"
    other = "2025-08-01 14:48:00,000 INFO unrelated line\r\n"
    second = LINE.replace("14:47:21", "14:49:00").replace("txn_42-a", "txn_43")
    log.write_bytes((LINE + "\r\n" + other + second + "\n").encode("utf-8"))
    entries = scan_file(parser, log, JOB)
    assert [e.transaction_id for e in entries] == ["txn_42-a", "txn_43"]
    assert entries[0].timestamp < entries[1].timestamp


def test_scan_file_empty(tmp_path, parser):
    log = tmp_path / "fe.log"
    log.write_text("")
    assert scan_file(parser, log, JOB) == []


def test_scan_missing_file_raises(tmp_path, parser):
    with pytest.raises(CliError):
        scan_file(parser, tmp_path / "absent.log", JOB)


def test_scan_invalid_utf8_raises(tmp_path, parser):
    log = tmp_path / "fe.log"
    log.write_bytes(b"\xff\xfe broken\n")
    with pytest.raises(CliError):
        scan_file(parser, log, JOB)