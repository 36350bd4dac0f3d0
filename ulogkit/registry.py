"""Registry of log tags and their levels, with syslog level helpers."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from .model import (
    ULOG_CRIT,
    ULOG_DEBUG,
    ULOG_ERR,
    ULOG_INFO,
    ULOG_NOTICE,
    ULOG_WARN,
)

DEFAULT_COOKIE_NAME = "threadx"
DEFAULT_COOKIE_LEVEL = ULOG_INFO

_LETTER_LEVELS = {
    "C": ULOG_CRIT,
    "D": ULOG_DEBUG,
    "E": ULOG_ERR,
    "I": ULOG_INFO,
    "N": ULOG_NOTICE,
    "W": ULOG_WARN,
}
_PRIORITY_CHARS = "  CEWNID"


def parse_tag_level(c: str) -> int:
    """Level from a digit or an upper-case letter (C, D, E, I, N, W).

    Other upper-case letters and any other character give 0; levels above
    debug are capped.
    """
    first = c[:1]
    if first.isascii() and first.isdigit():
        level = int(first)
    elif first.isascii() and first.isupper():
        level = _LETTER_LEVELS.get(first, 0)
    else:
        level = 0
    return min(level, ULOG_DEBUG)


def prio_to_char(prio: int) -> str:
    """One-letter marker of a priority; a space when it has none."""
    if prio < 0 or prio > ULOG_DEBUG:
        return " "
    return _PRIORITY_CHARS[prio]


def mask_to_level(mask: int) -> int:
    """Level matching a syslog priority mask: its highest set bit, clamped."""
    level = (mask & 0xFFFFFFFF).bit_length() - 1
    return max(ULOG_CRIT, min(level, ULOG_DEBUG))


@dataclass(eq=False)
class Cookie:
    """A log tag; a negative level means it is not registered yet."""

    name: str
    level: int = -1


class TagRegistry:
    """Thread-safe list of tags, most recently registered first."""

    def __init__(self, default: Optional[Cookie] = None) -> None:
        if default is None:
            default = Cookie(DEFAULT_COOKIE_NAME, DEFAULT_COOKIE_LEVEL)
        self.default = default
        self._lock = threading.RLock()
        self._cookies: List[Cookie] = [default]

    def __iter__(self) -> Iterator[Cookie]:
        with self._lock:
            return iter(list(self._cookies))

    def __len__(self) -> int:
        with self._lock:
            return len(self._cookies)

    def register(self, cookie: Cookie) -> Cookie:
        """Give an unregistered cookie the default level and list it."""
        level = self.default.level if self.default.level >= 0 else ULOG_INFO
        with self._lock:
            if cookie.level < 0:
                self._cookies.insert(0, cookie)
                cookie.level = level
        return cookie

    def set_level(self, cookie: Cookie, level: int) -> None:
        """Set a cookie's level, clamped to the valid range."""
        level = max(0, min(level, ULOG_DEBUG))
        self.register(cookie)
        cookie.level = level

    def get_level(self, cookie: Cookie) -> int:
        """Level of a cookie, registering it first if needed."""
        self.register(cookie)
        return cookie.level

    def _find(self, name: str) -> Cookie:
        with self._lock:
            for cookie in self._cookies:
                if cookie.name == name:
                    return cookie
        raise KeyError(name)

    def set_tag_level(self, name: str, level: int) -> None:
        """Set the level of the tag called ``name``; KeyError if unknown."""
        self.set_level(self._find(name), level)

    def get_tag_level(self, name: str) -> int:
        """Level of the tag called ``name``; KeyError if unknown."""
        return self._find(name).level

    def tag_names(self, maxlen: Optional[int] = None) -> List[str]:
        """Names of registered tags, at most ``maxlen`` of them."""
        with self._lock:
            names = [cookie.name for cookie in self._cookies]
        if maxlen is None:
            return names
        return names[:max(maxlen, 0)]

    def foreach(self, callback: Callable[[Cookie], object]) -> None:
        """Call ``callback`` with every registered cookie."""
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            for cookie in list(self._cookies):
                callback(cookie)