"""Paged, keyboard-driven selection from a list of items."""

from __future__ import annotations

import math
import os
import sys
from enum import Enum
from typing import Callable, Generic, Sequence, TextIO, TypeVar, Union

from doristools.console import print_info, truncate_string
from doristools.routine_load import RoutineLoadJob
from doristools.tools import InvalidInput

T = TypeVar("T")

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_LINE_UP_AND_CLEAR = "\x1b[1A\x1b[2K"
_ARROW_STYLED = "\x1b[1;36m>\x1b[0m"
_DIGITS = "0123456789"


class Key(Enum):
    """Special keys understood by the selector."""

    ENTER = "enter"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    OTHER = "other"


KeyPress = Union[Key, str]


def format_item(item: object) -> str:
    """Text shown for one item in a selection list."""
    if isinstance(item, RoutineLoadJob):
        return f"{item.id} - {truncate_string(item.name, 32)} ({item.state})"
    return str(item)


_POSIX_ESCAPES = {
    b"[A": Key.UP,
    b"[B": Key.DOWN,
    b"[C": Key.RIGHT,
    b"[D": Key.LEFT,
    b"OA": Key.UP,
    b"OB": Key.DOWN,
    b"OC": Key.RIGHT,
    b"OD": Key.LEFT,
}

_WINDOWS_ESCAPES = {"H": Key.UP, "P": Key.DOWN, "K": Key.LEFT, "M": Key.RIGHT}


def _utf8_length(first: int) -> int:
    if first >= 0xF0:
        return 4
    if first >= 0xE0:
        return 3
    if first >= 0xC0:
        return 2
    return 1


def _read_key_posix() -> KeyPress:
    import select
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        data = os.read(fd, 1)
        if data == b"\x03":
            raise KeyboardInterrupt
        if data in (b"\r", b"\n"):
            return Key.ENTER
        if data == b"\x1b":
            ready, _, _ = select.select([fd], [], [], 0.05)
            if not ready:
                return Key.OTHER
            return _POSIX_ESCAPES.get(os.read(fd, 2), Key.OTHER)
        if not data:
            raise InvalidInput("Input stream closed")
        remaining = _utf8_length(data[0]) - 1
        if remaining > 0:
            data += os.read(fd, remaining)
        return data.decode("utf-8", errors="replace")
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def _read_key_windows() -> KeyPress:
    import msvcrt

    ch = msvcrt.getwch()
    if ch == "\x03":
        raise KeyboardInterrupt
    if ch in ("\r", "\n"):
        return Key.ENTER
    if ch in ("\x00", "\xe0"):
        return _WINDOWS_ESCAPES.get(msvcrt.getwch(), Key.OTHER)
    return ch


def read_key() -> KeyPress:
    """Read one key press from the terminal without echo."""
    if os.name == "nt":
        return _read_key_windows()
    return _read_key_posix()


class InteractiveSelector(Generic[T]):
    """Let the user pick one item with arrow keys, paging and digit shortcuts."""

    def __init__(
        self,
        items: Sequence[T],
        title: str,
        page_size: int = 30,
        *,
        key_reader: Callable[[], KeyPress] = read_key,
        stream: TextIO | None = None,
    ) -> None:
        self.items = list(items)
        self.title = title
        self.page_size = max(1, page_size)
        self.selection = 0
        self._read_key = key_reader
        self._stream = stream

    def _effective_page_size(self) -> int:
        return max(1, min(self.page_size, len(self.items)))

    def handle_key(self, key: KeyPress) -> bool:
        """Move the selection for ``key``; True when the choice is confirmed."""
        count = len(self.items)
        if key is Key.ENTER:
            return True
        if count == 0:
            return False
        page_size = self._effective_page_size()
        current_page = self.selection // page_size
        if key is Key.UP:
            self.selection = count - 1 if self.selection == 0 else self.selection - 1
        elif key is Key.DOWN:
            self.selection = 0 if self.selection + 1 >= count else self.selection + 1
        elif key is Key.LEFT:
            if current_page > 0:
                self.selection = (current_page - 1) * page_size
        elif key is Key.RIGHT:
            total_pages = math.ceil(count / page_size)
            if current_page + 1 < total_pages:
                self.selection = min((current_page + 1) * page_size, count - 1)
        elif isinstance(key, str) and len(key) == 1 and key in _DIGITS:
            target = current_page * page_size + max(int(key) - 1, 0)
            if target < count:
                self.selection = target
        return False

    def render(self) -> list[str]:
        """Plain-text lines of the current page: a title, then its items."""
        total = len(self.items)
        page_size = self._effective_page_size()
        total_pages = math.ceil(total / page_size)
        current_page = self.selection // page_size
        start = current_page * page_size
        lines = [f"Page {current_page + 1}/{total_pages}  ({total} items)"]
        for index, item in enumerate(self.items[start : start + page_size], start):
            arrow = ">" if index == self.selection else " "
            lines.append(f"{arrow} {index + 1}. {format_item(item)}")
        return lines

    def _draw(self, out: TextIO) -> int:
        lines = self.render()
        colour = bool(getattr(out, "isatty", lambda: False)())
        for line in lines:
            if colour and line.startswith("> "):
                line = _ARROW_STYLED + line[1:]
            out.write(f"\r\x1b[2K{line}\n")
        out.flush()
        return len(lines)

    @staticmethod
    def _clear(out: TextIO, count: int) -> None:
        out.write(_LINE_UP_AND_CLEAR * count)

    def select(self) -> T:
        """Run the interactive selection and return the chosen item."""
        if not self.items:
            raise InvalidInput("No items to select from")
        out = self._stream if self._stream is not None else sys.stdout
        self.selection = 0

        print_info("")
        print_info(self.title)
        print_info("Use ↑/↓ move, ←/→ page, 1-9 jump, Enter to select:")

        out.write(_HIDE_CURSOR)
        drawn = self._draw(out)
        try:
            while not self.handle_key(self._read_key()):
                self._clear(out, drawn)
                drawn = self._draw(out)
        finally:
            out.write(_SHOW_CURSOR)
        self._clear(out, drawn)
        out.flush()
        return self.items[self.selection]