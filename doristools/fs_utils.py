"""Filesystem helpers: TOML output, config directory and log discovery."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli_w

from doristools.tools import CliError, ConfigError

_ARCHIVE_SUFFIXES = (".gz", ".zip", ".tar", ".tar.gz")


def save_toml_to_file(obj: Any, file_path: Path) -> None:
    """Serialize a mapping (or an object with ``to_dict``) to a TOML file."""
    file_path = Path(file_path)
    data = obj.to_dict() if hasattr(obj, "to_dict") else obj
    try:
        text = tomli_w.dumps(data)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Failed to serialize to TOML: {exc}") from exc
    ensure_dir_exists(file_path)
    try:
        file_path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write to file: {exc}") from exc


def ensure_dir_exists(path: Path) -> None:
    """Create the parent directory of ``path`` if it does not exist."""
    parent = Path(path).parent
    if not parent.exists():
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Failed to create directory: {exc}") from exc


def get_user_config_dir() -> Path:
    """Return the per-user configuration directory of the application."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as exc:
        raise ConfigError("Could not determine the user's home directory") from exc
    return home / ".config" / "cloud-cli"


def read_file_content(path: Path) -> str:
    """Read a whole file as text."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read file: {exc}") from exc


def _modified_key(path: Path) -> tuple[int, float]:
    try:
        return (1, path.stat().st_mtime)
    except OSError:
        return (0, 0.0)


def collect_log_files(directory: Path, log_prefix: str) -> list[Path]:
    """List uncompressed log files starting with ``log_prefix``, newest first."""
    directory = Path(directory)
    if not directory.exists():
        raise ConfigError(f"Log directory does not exist: {directory}")
    if not directory.is_dir():
        raise ConfigError(f"Path is not a directory: {directory}")

    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise CliError(str(exc)) from exc

    files = [
        p
        for p in entries
        if p.name.startswith(log_prefix) and not p.name.endswith(_ARCHIVE_SUFFIXES)
    ]
    if not files:
        raise ConfigError(f"No {log_prefix} files found in directory: {directory}")

    files.sort(key=_modified_key)
    files.reverse()
    return files


def collect_fe_logs(directory: Path) -> list[Path]:
    """List FE log files in ``directory``, newest first."""
    return collect_log_files(directory, "fe.log")


def collect_be_logs(directory: Path) -> list[Path]:
    """List BE log files in ``directory``, newest first."""
    return collect_log_files(directory, "be.INFO")