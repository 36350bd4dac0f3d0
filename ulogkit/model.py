"""Shared data model: formats, flags, log entries, frames and devices."""

from __future__ import annotations

import enum
import errno
import os
from dataclasses import dataclass, field
from typing import IO, Callable, Optional, Union

ULOG_CRIT = 2
ULOG_ERR = 3
ULOG_WARN = 4
ULOG_NOTICE = 5
ULOG_INFO = 6
ULOG_DEBUG = 7

# This buffer holds wrapped kernel messages and is not a regular ulog buffer.
KMSGD_ULOG_NAME = "kmsgd"

# Default ANSI colour sequences, one per priority level, separated by '|'.
DEFAULT_COLORS = "||4;1;31|1;31|1;33|35||1;30"


class LogFormat(enum.IntEnum):
    """Text rendering formats."""

    SHORT = 0
    ALIGNED = 1
    PROCESS = 2
    LONG = 3
    CSV = 4


class Flag(enum.IntFlag):
    """Processing options."""

    DUMP = 1 << 2
    COLOR = 1 << 3
    SHOW_LABEL = 1 << 4
    ULOG = 1 << 5
    KLOG = 1 << 7


@dataclass
class LogEntry:
    """A parsed log entry; ``message`` is bytes for binary entries."""

    tv_sec: int = 0
    tv_nsec: int = 0
    priority: int = 0
    pid: int = 0
    pname: str = ""
    tid: int = 0
    tname: str = ""
    tag: str = ""
    message: Union[str, bytes] = ""
    is_binary: bool = False
    color: int = 0

    @property
    def payload_length(self) -> int:
        """Length of the CSV payload: hex digits for binary, bytes for text."""
        if self.is_binary:
            return 2 * len(self.message)
        return len(self.message.encode("utf-8", "surrogateescape"))


@dataclass
class Frame:
    """An entry read from a device, with its timestamp in microseconds."""

    entry: LogEntry = field(default_factory=LogEntry)
    device: Optional["LogDevice"] = None
    stamp: int = 0


@dataclass
class Options:
    """Options for opening a log reader."""

    format: LogFormat = LogFormat.SHORT
    flags: Flag = Flag(0)
    tail: int = 0
    output: Optional[IO[str]] = None
    output_fd: int = -1


Receiver = Callable[["LogDevice"], Optional[Frame]]
Parser = Callable[[Frame], Frame]
Clearer = Callable[["LogDevice"], None]


class LogDevice:
    """A readable log source backed by a file descriptor.

    Reading, parsing and clearing are delegated to the given callables;
    subclasses may override the methods instead.
    """

    def __init__(
        self,
        path: str,
        fd: int = -1,
        label: str = "U",
        mark_readable: int = 0,
        *,
        receiver: Optional[Receiver] = None,
        parser: Optional[Parser] = None,
        clearer: Optional[Clearer] = None,
    ) -> None:
        self.path = path
        self.fd = fd
        self.label = label
        self.mark_readable = mark_readable
        self.printed = False
        self.pending = False
        self.index = -1
        self._receiver = receiver
        self._parser = parser
        self._clearer = clearer

    def fileno(self) -> int:
        return self.fd

    def receive(self) -> Optional[Frame]:
        """Read one entry; None means nothing usable was read this time."""
        if self._receiver is None:
            raise OSError(errno.EBADF, "device cannot be read", self.path)
        return self._receiver(self)

    def parse(self, frame: Frame) -> Frame:
        """Finish parsing a received frame."""
        if self._parser is None:
            return frame
        return self._parser(frame)

    def clear(self) -> None:
        """Flush the device's buffer."""
        if self._clearer is None:
            raise OSError(errno.ENOTSUP, "device cannot be cleared", self.path)
        self._clearer(self)

    def close(self) -> None:
        if self.fd >= 0:
            os.close(self.fd)
            self.fd = -1

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.path!r}, label={self.label!r})"