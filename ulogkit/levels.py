"""Log level notations and the time and number parsing used by log tools."""

from __future__ import annotations

import re
from typing import Tuple

from .model import (
    ULOG_CRIT,
    ULOG_DEBUG,
    ULOG_ERR,
    ULOG_INFO,
    ULOG_NOTICE,
    ULOG_WARN,
)

COLOR_RESET = "\x1b[0m"
COLOR_RED = "\x1b[00;91m"
COLOR_GREEN = "\x1b[00;92m"
COLOR_YELLOW = "\x1b[00;93m"
COLOR_BLUE = "\x1b[00;94m"
COLOR_PURPLE = "\x1b[00;95m"

_LETTER_LEVELS = {
    "C": ULOG_CRIT,
    "E": ULOG_ERR,
    "W": ULOG_WARN,
    "N": ULOG_NOTICE,
    "I": ULOG_INFO,
    "D": ULOG_DEBUG,
}
_LEVEL_LETTERS = {level: letter for letter, level in _LETTER_LEVELS.items()}
_LEVEL_COLORS = {
    ULOG_CRIT: COLOR_RED,
    ULOG_ERR: COLOR_RED,
    ULOG_WARN: COLOR_YELLOW,
    ULOG_NOTICE: COLOR_GREEN,
    ULOG_INFO: COLOR_BLUE,
    ULOG_DEBUG: COLOR_PURPLE,
}

_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


class TimeParseError(ValueError):
    """A time prefix could not be parsed; ``rest`` is where parsing stopped."""

    def __init__(self, rest: str) -> None:
        super().__init__(f"invalid time in {rest!r}")
        self.rest = rest


def _strtol(text: str, pos: int) -> Tuple[int, int]:
    """Parse a decimal integer at ``pos``; (0, pos) when there is none."""
    match = _LEADING_INT.match(text, pos)
    if match is None:
        return 0, pos
    return int(match.group(1)), match.end()


def _int32(value: int) -> int:
    return ((value + (1 << 31)) % (1 << 32)) - (1 << 31)


def parse_level(c: str) -> int:
    """Level from a digit or one of the letters C, E, W, N, I, D.

    Digits above the debug level are capped; anything else is info.
    """
    first = c[:1]
    if first.isdigit() and first.isascii():
        return min(int(first), ULOG_DEBUG)
    return _LETTER_LEVELS.get(first, ULOG_INFO)


def parse_int32(text: str) -> int:
    """Parse a whole string as a decimal 32-bit integer."""
    if not text:
        raise ValueError("empty number")
    value, end = _strtol(text, 0)
    if end != len(text):
        raise ValueError(f"invalid number: {text!r}")
    return _int32(value)


def parse_time(text: str) -> Tuple[int, int, str]:
    """Parse 'SECONDS[ NANOSECONDS]' at the start of ``text``.

    Seconds must be followed by a space; nanoseconds are optional and
    default to 0. Returns (seconds, nanoseconds, rest of text). Raises
    TimeParseError, whose ``rest`` tells where parsing stopped.
    """
    if not text or text[0] == " ":
        raise TimeParseError(text)
    seconds, end = _strtol(text, 0)
    if end >= len(text) or text[end] != " ":
        raise TimeParseError(text[end:])
    start = end + 1
    nanoseconds, end = _strtol(text, start)
    if end == start:
        nanoseconds = 0
    return _int32(seconds), _int32(nanoseconds), text[end:]


def char_to_level(c: str) -> int:
    """Level from one of the letters C, E, W, N, I, D in either case."""
    level = _LETTER_LEVELS.get(c[:1].upper()) if len(c) == 1 else None
    if level is None:
        raise ValueError(f"unrecognized level ({c})")
    return level


def level_to_char(level: int) -> str:
    """Letter of a level; '?' for an unknown one."""
    return _LEVEL_LETTERS.get(level, "?")


def level_to_color(level: int) -> str:
    """ANSI colour sequence used to show a level."""
    return _LEVEL_COLORS.get(level, COLOR_RESET)