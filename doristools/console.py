"""Console output helpers, number formatting and simple text prompts."""

from __future__ import annotations

import os
import re
import shutil
import sys
from importlib import metadata
from typing import TextIO

from doristools.tools import InvalidInput

SUCCESS = "[+] "
ERROR = "[!] "
WARNING = "[*] "
INFO = "[i] "
PROCESS = "[>] "
SEARCH = "[?] "

_TITLE = "SelectDB CLI Tools for Apache Doris"
_GOODBYE = "Thanks for using SelectDB Cloud CLI Tools!"

_CODES = {
    "bold": "1",
    "dim": "2",
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "cyan": "36",
}

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _colour_enabled(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except ValueError:
        return False


def _style(text: str, *styles: str, stream: TextIO | None = None) -> str:
    target = stream if stream is not None else sys.stdout
    if not styles or not _colour_enabled(target):
        return text
    codes = ";".join(_CODES[name] for name in styles)
    return f"\x1b[{codes}m{text}\x1b[0m"


def _version() -> str:
    try:
        return metadata.version("doristools")
    except metadata.PackageNotFoundError:
        return "0.1.0"


def print_success(message: str) -> None:
    """Print a success message in bold green."""
    print(_style(f"{SUCCESS} {message}", "green", "bold"))


def print_error(message: str) -> None:
    """Print an error message in bold red on standard error."""
    print(_style(f"{ERROR} {message}", "red", "bold", stream=sys.stderr), file=sys.stderr)


def print_warning(message: str) -> None:
    """Print a warning message in bold yellow."""
    print(_style(f"{WARNING} {message}", "yellow", "bold"))


def print_info(message: str) -> None:
    """Print an informational message in blue."""
    print(_style(f"{INFO} {message}", "blue"))


def print_step(step: int, message: str) -> None:
    """Print a numbered step heading."""
    print()
    print(f"{_style(f'Step {step}', 'cyan', 'bold')} {_style(message, 'bold')}")


def print_process_info(pid: int, command: str) -> None:
    """Print the PID and a shortened command line of a process."""
    arrow = _style(">", "blue")
    print()
    print(f"{PROCESS} Process Details:")
    print(f"  {arrow} PID: {_style(str(pid), 'green', 'bold')}")
    print(f"  {arrow} Command: {_style(truncate_command(command, 60), 'dim')}")


def print_header() -> None:
    """Print the application banner, as wide as the terminal."""
    width = shutil.get_terminal_size((80, 24)).columns
    rule = _style("─" * width, "dim")
    print()
    print(rule)
    print(_style(_TITLE.center(width), "cyan", "bold"))
    print(_style(f"Version {_version()}".center(width), "dim"))
    print(rule)
    print()


def print_goodbye() -> None:
    """Print the farewell message."""
    print()
    print(_style(_GOODBYE, "green", "bold"))
    print()


def truncate_command(command: str, max_len: int) -> str:
    """Cut ``command`` to ``max_len`` characters and mark the cut with '...'."""
    if len(command) <= max_len:
        return command
    return f"{command[:max_len]}..."


def format_menu_item(icon: str, title: str, description: str) -> str:
    """Format one menu line as ``icon title - description``."""
    return (
        f"{_style(icon, 'blue')} {_style(title, 'bold')} - {_style(description, 'dim')}"
    )


def fmt_int(value: int) -> str:
    """Group the digits of a non-negative integer with commas."""
    return f"{value:,}"


def truncate_string(text: str, max_len: int) -> str:
    """Shorten ``text`` to ``max_len`` characters, ending in '...' when cut."""
    if len(text) <= max_len:
        return text
    return f"{text[:max(max_len - 3, 0)]}..."


def _read_line(prompt_text: str) -> str:
    try:
        return input(prompt_text)
    except EOFError as exc:
        raise InvalidInput("Input stream closed") from exc


def prompt_non_empty(prompt: str) -> str:
    """Ask until a non-empty answer is given; return it stripped."""
    while True:
        raw = _read_line(f"{prompt}: ")
        if raw:
            break
    text = raw.strip()
    if not text:
        raise InvalidInput("Input cannot be empty")
    return text


def prompt_number_with_default(prompt: str, default: int, minimum: int) -> int:
    """Ask for an integer; blank or invalid answers give ``default``, floored at ``minimum``."""
    raw = _read_line(f"{prompt} [{default}]: ")
    text = raw.strip() or str(default)
    value = default
    if _INTEGER_RE.fullmatch(text):
        number = int(text)
        if _I64_MIN <= number <= _I64_MAX:
            value = number
    return max(value, minimum)