"""HTTP requests to the local BE web server, made through curl."""

from __future__ import annotations

from typing import Iterable

from doristools.jvm_tools import run_command
from doristools.tools import ToolExecutionFailed

BE_DEFAULT_IP = "127.0.0.1"
DEFAULT_BE_HTTP_PORTS = (8040, 8041)


def _lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part.removesuffix("\r") for part in parts]


def filter_lines(content: str, pattern: str) -> str:
    """Keep the lines of ``content`` that contain ``pattern``, joined by newlines."""
    return "\n".join(line for line in _lines(content) if pattern in line)


def request_be_webserver_port(
    endpoint: str,
    filter_pattern: str | None = None,
    ports: Iterable[int] | None = None,
) -> str:
    """GET ``endpoint`` from the first BE HTTP port that answers."""
    port_list = list(ports) if ports is not None else list(DEFAULT_BE_HTTP_PORTS)
    for port in port_list:
        url = f"http://{BE_DEFAULT_IP}:{port}{endpoint}"
        try:
            completed = run_command(["curl", "-sS", url], "curl")
        except ToolExecutionFailed:
            continue
        content = completed.stdout.decode("utf-8", errors="replace")
        if filter_pattern is not None:
            return filter_lines(content, filter_pattern)
        return content

    ports_text = ", ".join(str(port) for port in port_list)
    raise ToolExecutionFailed(
        f"Could not connect to any BE http port ({ports_text}). Check if BE is running."
    )