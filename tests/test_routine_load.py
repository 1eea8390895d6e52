import pytest

from doristools.routine_load import (
    JobStatistic,
    RoutineLoadJob,
    RoutineLoadJobManager,
    RoutineLoadState,
    parse_routine_load_output,
    parse_statistic,
)
from doristools.tools import ToolExecutionFailed

SAMPLE = """
*************************** 1. row ***************************
                  Id: 12345
                Name: orders_job
          CreateTime: 2025-08-01 10:00:00
           PauseTime: NULL
             EndTime: NULL
              DbName: default_cluster:demo_db
           TableName: demo_table
               State: RUNNING
      DataSourceType: KAFKA
      CurrentTaskNum: 1
           Statistic: {"receivedBytes":2048,"loadedRows":100,"errorRows":2,"committedTaskNum":5}
            Progress: {"0":"10","1":"20"}
                 Lag: {"0":3,"1":0}
*************************** 2. row ***************************
                  Id: 67890
                Name: users_job
           Statistic: NULL
            Progress: NULL
                 Lag: NULL
"""


def block(**entries):
    lines = ["*************************** 1. row ***************************"]
    lines += [f"{key}: {value}" for key, value in entries.items()]
    return "\n".join(lines) + "\n"


def test_parse_full_job():
    jobs = parse_routine_load_output(SAMPLE)
    assert [j.id for j in jobs] == ["12345", "67890"]
    job = jobs[0]
    assert job.name == "orders_job"
    assert job.state == "RUNNING"
    assert job.db_name == "default_cluster:demo_db"
    assert job.table_name == "demo_table"
    assert job.create_time == "2025-08-01 10:00:00"
    assert job.pause_time is None
    assert job.end_time is None
    assert job.data_source_type == "KAFKA"
    assert job.current_task_num == "1"
    assert job.progress == {"0": "10", "1": "20"}
    assert job.lag == {"0": 3, "1": 0}
    assert job.statistic.loaded_rows == 100
    assert job.statistic.received_bytes == 2048
    assert job.statistic.error_rows == 2
    assert job.statistic.total_rows == 0


def test_null_columns_give_none_and_defaults():
    job = parse_routine_load_output(SAMPLE)[1]
    assert job.statistic is None
    assert job.progress is None
    assert job.lag is None
    assert job.state == "UNKNOWN"
    assert job.db_name == ""


def test_rows_without_id_or_name_are_skipped():
    assert parse_routine_load_output(block(Name="only_name")) == []
    assert parse_routine_load_output(block(Id="1")) == []


def test_bad_statistic_raises():
    with pytest.raises(ToolExecutionFailed, match="Failed to parse statistic"):
        parse_routine_load_output(block(Id="1", Name="j", Statistic="{broken"))


def test_bad_lag_raises():
    with pytest.raises(ToolExecutionFailed, match="Failed to parse lag"):
        parse_routine_load_output(block(Id="1", Name="j", Lag='{"0":"x"}'))


def test_bad_progress_raises():
    with pytest.raises(ToolExecutionFailed, match="Failed to parse progress"):
        parse_routine_load_output(block(Id="1", Name="j", Progress='{"0":5}'))


def test_parse_statistic_ignores_invalid_counters():
    stat = parse_statistic('{"loadedRows":-4,"errorRows":1.5,"totalRows":true,"receivedBytes":7}')
    assert stat == JobStatistic(received_bytes=7)


def test_parse_statistic_non_object_is_all_zero():
    assert parse_statistic("[]") == JobStatistic()


def test_manager_save_and_read():
    manager = RoutineLoadJobManager(RoutineLoadState())
    manager.save_job_id("12345", "orders_job", "demo_db")
    assert manager.get_current_job_id() == "12345"
    assert manager.get_current_job_name() == "orders_job"
    assert manager.get_last_database() == "demo_db"


def test_manager_clear_state():
    manager = RoutineLoadJobManager(RoutineLoadState())
    manager.save_job_id("1", "j", "db")
    manager.update_job_cache([RoutineLoadJob(id="1", name="j")])
    manager.clear_state()
    assert manager.get_current_job_id() is None
    assert manager.get_last_database() is None
    assert manager.get_job_cache() == {}


def test_manager_cache_and_validation():
    manager = RoutineLoadJobManager(RoutineLoadState())
    jobs = [RoutineLoadJob(id="123", name="a"), RoutineLoadJob(id="456", name="b")]
    manager.update_job_cache(jobs)
    assert set(manager.get_job_cache()) == {"123", "456"}
    assert manager.validate_job_id("123") is True
    assert manager.validate_job_id("999") is False
    assert manager.validate_job_id("12a") is False


def test_update_job_cache_replaces_previous():
    manager = RoutineLoadJobManager(RoutineLoadState())
    manager.update_job_cache([RoutineLoadJob(id="1", name="a")])
    manager.update_job_cache([RoutineLoadJob(id="2", name="b")])
    assert list(manager.get_job_cache()) == ["2"]


def test_default_managers_share_state():
    first = RoutineLoadJobManager()
    try:
        first.save_job_id("777", "shared", "db")
        assert RoutineLoadJobManager().get_current_job_id() == "777"
    finally:
        first.clear_state()
    assert RoutineLoadJobManager().get_current_job_id() is None