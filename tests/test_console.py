import re

import pytest

from doristools import console
from doristools.tools import InvalidInput

_ANSI = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def plain(text):
    return _ANSI.sub("", text)


def feed(monkeypatch, answers):
    it = iter(answers)

    def fake_input(prompt=""):
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr("builtins.input", fake_input)


def test_truncate_command_short_is_unchanged():
    assert console.truncate_command("java -jar fe.jar", 60) == "java -jar fe.jar"


def test_truncate_command_long_is_cut():
    command = "x" * 100
    result = console.truncate_command(command, 60)
    assert result.endswith("...")
    assert len(result) == 63
    assert command.startswith(result[:-3])


def test_truncate_string_keeps_max_length():
    result = console.truncate_string("a_very_long_routine_load_job_name_here", 12)
    assert len(result) == 12
    assert result.endswith("...")
    assert "a_very_long_routine_load_job_name_here".startswith(result[:-3])


def test_truncate_string_short_is_unchanged():
    assert console.truncate_string("job", 32) == "job"


def test_fmt_int_groups_digits():
    assert console.fmt_int(1234567) == "1,234,567"
    assert console.fmt_int(999) == "999"


@pytest.mark.parametrize("value", [0, 7, 1000, 98765432109876543210])
def test_fmt_int_round_trips(value):
    assert int(console.fmt_int(value).replace(",", "")) == value


def test_format_menu_item():
    item = plain(console.format_menu_item("[1]", "FE", "Frontend operations"))
    assert item == "[1] FE - Frontend operations"


def test_print_info_writes_prefix(capsys):
    console.print_info("hello")
    out = plain(capsys.readouterr().out)
    assert out == f"{console.INFO} hello\n"


def test_print_error_goes_to_stderr(capsys):
    console.print_error("boom")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert plain(captured.err) == f"{console.ERROR} boom\n"


def test_print_success_and_warning(capsys):
    console.print_success("done")
    console.print_warning("careful")
    out = plain(capsys.readouterr().out)
    assert f"{console.SUCCESS} done" in out
    assert f"{console.WARNING} careful" in out


def test_print_step(capsys):
    console.print_step(3, "Routine Load Tools")
    out = plain(capsys.readouterr().out)
    assert "Step 3 Routine Load Tools" in out


def test_print_process_info_truncates(capsys):
    console.print_process_info(4242, "y" * 80)
    out = plain(capsys.readouterr().out)
    assert "PID: 4242" in out
    assert "y" * 60 + "..." in out
    assert "y" * 61 not in out


def test_print_header_and_goodbye(capsys):
    console.print_header()
    console.print_goodbye()
    out = plain(capsys.readouterr().out)
    assert "SelectDB CLI Tools for Apache Doris" in out
    assert "Thanks for using SelectDB Cloud CLI Tools!" in out


def test_prompt_non_empty_strips(monkeypatch):
    feed(monkeypatch, ["  demo_db  "])
    assert console.prompt_non_empty("Database name") == "demo_db"


def test_prompt_non_empty_asks_again_on_empty(monkeypatch):
    feed(monkeypatch, ["", "demo_db"])
    assert console.prompt_non_empty("Database name") == "demo_db"


def test_prompt_non_empty_rejects_whitespace(monkeypatch):
    feed(monkeypatch, ["   "])
    with pytest.raises(InvalidInput):
        console.prompt_non_empty("Database name")


def test_prompt_non_empty_eof(monkeypatch):
    feed(monkeypatch, [])
    with pytest.raises(InvalidInput):
        console.prompt_non_empty("Database name")


@pytest.mark.parametrize(
    "answer, expected",
    [("", 30), ("abc", 30), ("45", 45), ("0", 1), ("-5", 1), (" 12 ", 12)],
)
def test_prompt_number_with_default(monkeypatch, answer, expected):
    feed(monkeypatch, [answer])
    assert console.prompt_number_with_default("Analyze recent minutes", 30, 1) == expected