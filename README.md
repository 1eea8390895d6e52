# doristools

A Python library for diagnosing and operating Apache Doris clusters. It
gathers the everyday chores of looking after frontend (FE) and backend (BE)
nodes into tools that share one interface.

## What is in it

- `doristools.tools`: the common pieces. `Tool` is the abstract base class;
  every tool has `name`, `description`, `requires_pid` and
  `execute(context, pid)`, which returns an `ExecutionResult`
  (`output_path`, `message`) or raises a `CliError` subclass
  (`ConfigError`, `ToolExecutionFailed`, `InvalidInput`, `GracefulExit`).
  `ToolContext(output_dir, jdk_path, timeout_seconds=60)` carries the
  run-time settings and offers `ensure_output_dir()`, `jmap_path()` and
  `jstack_path()`.
- `doristools.jvm_tools`: `JmapDumpTool` (heap dump, `.hprof`),
  `JmapHistoTool` (histogram, `.log`), `JstackTool` (thread stacks, `.log`)
  and `FeProfilerTool`, which runs `bin/profile_fe.sh` from the FE install
  directory (given to the constructor, or taken from `DORIS_FE_HOME` or
  `DORIS_HOME`) for the number of seconds in `PROFILE_SECONDS` or entered at
  a prompt (1 to 300, default 10). `run_command` runs a program, captures its
  output and raises `ToolExecutionFailed` on failure or timeout.
- `doristools.be_http`: `request_be_webserver_port(endpoint, filter_pattern,
  ports)` fetches a page from the BE web server on 127.0.0.1 with `curl`,
  trying ports 8040 and 8041 unless others are given; `filter_lines` keeps
  the lines containing a pattern.
- `doristools.memz`: `MemzTool` and `MemzGlobalTool` fetch `/memz` and
  `/memz?type=global`, print a table of the key jemalloc metrics and save the
  page as timestamped HTML. `extract_memory_metrics` and `format_bytes` are
  usable on their own.
- `doristools.response_handler`: `BeResponseHandler` prints a BE response to
  the console or saves it to a timestamped file with a summary.
- `doristools.cluster`: parses `SHOW FRONTENDS \G` / `SHOW BACKENDS \G`
  output into `Frontend`, `Backend` and `ClusterInfo`, validates it and saves
  it as TOML (by default to `~/.config/cloud-cli/clusters.toml`).
- `doristools.routine_load`: `RoutineLoadJob`, `JobStatistic`, parsing of
  `SHOW ALL ROUTINE LOAD \G` output and `RoutineLoadJobManager`, a
  thread-safe store of the selected job shared by the Routine Load tools.
- `doristools.job_lister`: `RoutineLoadJobLister` lists a database's jobs,
  lets the user pick one and prints a report with partition lag tables; the
  full partition list is written to `routine_load_partitions_<id>.txt`.
- `doristools.log_parser` and `doristools.load_analysis`: `FeLogParser` reads
  commit records of a job from FE logs; `RoutineLoadPerformanceAnalyzer`
  prints a per-commit table with averages, minima and maxima, and
  `RoutineLoadTrafficMonitor` sums loaded rows per minute. Both look in the
  log directory given to the constructor or in `DORIS_LOG_DIR`.
- `doristools.fs_utils`: TOML output, the user config directory and
  discovery of `fe.log*` / `be.INFO*` files, newest first, skipping archives.
- `doristools.console` and `doristools.selector`: coloured status messages,
  number formatting, simple prompts and `InteractiveSelector`, a paged
  arrow-key picker (↑/↓ move, ←/→ page, 1-9 jump, Enter selects).

## Examples

Parse cluster information from `mysql` output:

```python
from doristools.cluster import ClusterInfo, parse_backends, parse_frontends

info = ClusterInfo(
    frontends=parse_frontends(show_frontends_output),
    backends=parse_backends(show_backends_output),
)
info.validate()
info.save_to_file(path_to_toml)
```

Read Routine Load commits of one job from FE logs and summarise them:

```python
from doristools.load_analysis import (
    aggregate_per_minute,
    collect_entries,
    format_traffic_report,
)

entries = collect_entries(log_dir, "12345", "No matching entries found")
for line in format_traffic_report(aggregate_per_minute(entries)):
    print(line)
```

Run a memory report against the local BE node:

```python
from doristools.be_http import request_be_webserver_port
from doristools.memz import MemzTool, format_bytes
from doristools.tools import ToolContext

context = ToolContext(output_dir="out", jdk_path="/opt/jdk")
result = MemzTool(request_be_webserver_port).execute(context, 0)
print(result.message)
print(format_bytes(3 * 1024 * 1024))  # "3.00 MB (3145728 bytes)"
```

## What it does not do

This is a library, not a finished application. It has no command to run and
no menu-driven program that ties the tools together, and no registry listing
them. It does not talk to MySQL itself: `RoutineLoadJobLister` is given a
function that runs a query and returns the `mysql` output. It has no tools
for BE process stack traces, BE variable lookup, running pipeline tasks or
changing BE configuration across a cluster, and it does not look up process
IDs; the caller passes the PID to `execute`.

## Requirements

Python 3.10 or later. Depending on the tool, the host needs `curl`, `bash`
or a JDK (`jmap`, `jstack`).

## Running the tests

Install the `test` extra and run `pytest` from the project directory.