"""Uniform presentation of responses fetched from a BE node."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from doristools.console import print_error, print_info, print_success, print_warning
from doristools.tools import CliError, ExecutionResult

_CONSOLE_OUTPUT = Path("console_output")


def title_case(text: str) -> str:
    """Capitalise each whitespace-separated word and lower-case the rest."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())


@dataclass(frozen=True)
class BeResponseHandler:
    """Messages used when presenting one kind of BE response."""

    success_message: str
    empty_warning: str
    error_context: str
    tips: str

    def _fetch(self, fetch: Callable[[], str]) -> str:
        try:
            return fetch()
        except CliError as exc:
            print_error(f"{self.error_context}: {exc}.")
            print_info(f"Tips: {self.tips}")
            raise

    def _announce(self) -> None:
        print_success(self.success_message)
        print()
        print_info("Results:")

    def handle_console_result(
        self, fetch: Callable[[], str], context: str
    ) -> ExecutionResult:
        """Fetch a response and print it to the console."""
        output = self._fetch(fetch)
        self._announce()
        if not output:
            print_warning(self.empty_warning.replace("{}", context))
        else:
            print(output)
        return ExecutionResult(_CONSOLE_OUTPUT, f"Query completed for: {context}")

    def handle_file_result(
        self,
        output_dir: Path,
        fetch: Callable[[], str],
        file_prefix: str,
        summary_fn: Callable[[str], str],
    ) -> ExecutionResult:
        """Fetch a response, save it to a timestamped file and print a summary."""
        output = self._fetch(fetch)
        self._announce()
        if not output.strip():
            print_warning(self.empty_warning)
            return ExecutionResult(_CONSOLE_OUTPUT, "No data found")

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        output_path = Path(output_dir) / f"{file_prefix}_{timestamp}.txt"
        try:
            output_path.write_text(output, encoding="utf-8")
        except OSError as exc:
            raise CliError(str(exc)) from exc

        print(summary_fn(output))
        label = title_case(file_prefix.replace("_", " "))
        return ExecutionResult(output_path, f"{label} saved to {output_path}")