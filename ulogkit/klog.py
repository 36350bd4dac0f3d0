"""Kernel log records: /dev/kmsg reading and kmsgd entry fix-ups."""

from __future__ import annotations

import errno
import os
import re
from typing import Optional, Tuple

from .model import ULOG_INFO, Frame, LogDevice, LogEntry

KMSG_PATH = "/dev/kmsg"
BUFSIZ = 8192

# Assumed kernel log buffer size; the readable mark is twice this amount,
# which is larger than what can actually be read from /dev/kmsg.
KMSG_BUFFER_SIZE = 1 << 17

_SEEK_DATA = getattr(os, "SEEK_DATA", os.SEEK_SET)
_UNSIGNED = re.compile(r"\s*([+-]?)(\d+)")
_ESCAPE = re.compile(rb"\\x([0-9a-fA-F]{2})")


def _strtoul(text: str, pos: int) -> Tuple[int, int]:
    """Parse an integer at ``pos``; return (value, end) like strtoul."""
    match = _UNSIGNED.match(text, pos)
    if match is None:
        return 0, pos
    value = int(match.group(2))
    if match.group(1) == "-":
        value = -value
    return value, match.end()


def _leading_int(text: str) -> int:
    return _strtoul(text, 0)[0]


def parse_prefix(entry: LogEntry) -> LogEntry:
    """Strip a '<N>' priority prefix from the message, setting the priority."""
    text = entry.message
    if not text.startswith("<") or len(text) + 1 < 4:
        return entry
    if text[2] == ">":
        entry.priority = (int(text[1]) & 0x7) if text[1].isdigit() else ULOG_INFO
        end = 3
    else:
        value, end = _strtoul(text, 1)
        entry.priority = value & 0x7
        if end >= len(text) or text[end] != ">":
            return entry
        end += 1
    entry.message = text[end:]
    return entry


def parse_timestamp(entry: LogEntry) -> LogEntry:
    """Strip a '[sec.usec] ' timestamp from the message, setting the time."""
    text = entry.message
    if text.startswith("["):
        sec, end = _strtoul(text, 1)
        if end < len(text) and text[end] == ".":
            usec, end = _strtoul(text, end + 1)
            if text[end:end + 2] == "] ":
                entry.tv_sec = sec
                entry.tv_nsec = usec * 1000
                entry.message = text[end + 2:]
                return entry
    entry.tv_sec = 0
    entry.tv_nsec = 0
    return entry


def _mark_kernel(entry: LogEntry) -> None:
    entry.pid = 0
    entry.tid = 0
    entry.pname = ""
    entry.tname = ""
    entry.tag = "KERNEL"
    entry.is_binary = False
    entry.color = 0


def kmsgd_fix_entry(entry: LogEntry) -> LogEntry:
    """Fix up a kernel message that was copied into a ulog buffer."""
    parse_prefix(entry)
    parse_timestamp(entry)
    _mark_kernel(entry)
    return entry


def unescape_kmsg(text: str) -> str:
    """Replace C-style '\\xNN' escapes with the bytes they stand for."""
    raw = text.encode("utf-8", "surrogateescape")
    raw = _ESCAPE.sub(lambda m: bytes([int(m.group(1), 16)]), raw)
    return raw.decode("utf-8", "surrogateescape")


def parse_kmsg_record(data: bytes) -> Frame:
    """Partially parse one /dev/kmsg record: priority, timestamp, raw text.

    The entry message holds everything after the ';' separator; it is
    finished by ``KlogDevice.parse``.
    """
    text = data.decode("utf-8", "surrogateescape")
    fields = text.split(",", 3)
    if len(fields) < 4:
        raise ValueError("malformed kmsg record")
    prio, _seqnum, timestamp, rest = fields
    start = rest.find(";")
    if start < 0:
        raise ValueError("kmsg record has no message")
    usec = _leading_int(timestamp)
    entry = LogEntry(
        priority=_leading_int(prio) & 0x7,
        tv_sec=usec // 1000000,
        tv_nsec=(usec % 1000000) * 1000,
        message=rest[start + 1:],
    )
    return Frame(entry=entry, stamp=usec)


def _finish_kmsg(frame: Frame) -> Frame:
    entry = frame.entry
    head, newline, _ = entry.message.partition("\n")
    if not newline:
        raise ValueError("kmsg record is not terminated")
    _mark_kernel(entry)
    entry.message = unescape_kmsg(head) if "\\" in head else head
    return frame


class KlogDevice(LogDevice):
    """The kernel ring buffer read record by record from /dev/kmsg."""

    def __init__(self, path: str = KMSG_PATH,
                 mark_readable: Optional[int] = None) -> None:
        fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
        super().__init__(path, fd, "K", 0)
        try:
            # skip stale entries, then make sure the kernel supports reads
            self._rewind()
            try:
                os.read(fd, BUFSIZ)
            except OSError as exc:
                if exc.errno not in (errno.EAGAIN, errno.EPIPE):
                    raise
            self._rewind()
        except BaseException:
            self.close()
            raise
        if mark_readable is None:
            mark_readable = 2 * KMSG_BUFFER_SIZE
        self.mark_readable = mark_readable

    def _rewind(self) -> None:
        try:
            os.lseek(self.fd, 0, _SEEK_DATA)
        except OSError:
            pass

    def fileno(self) -> int:
        return self.fd

    def receive(self) -> Optional[Frame]:
        """Read exactly one kernel record; None when there is nothing to read."""
        try:
            data = os.read(self.fd, BUFSIZ - 1)
        except OSError as exc:
            # EPIPE means a record was overwritten before being read
            if exc.errno in (errno.EINTR, errno.EAGAIN, errno.EPIPE):
                return None
            raise
        if not data:
            return None
        frame = parse_kmsg_record(data)
        frame.device = self
        self.mark_readable -= len(data)
        return frame

    def parse(self, frame: Frame) -> Frame:
        """Cut the message at its first newline and unescape it."""
        return _finish_kmsg(frame)

    def clear(self) -> None:
        """Skip every record currently in the buffer."""
        os.lseek(self.fd, 0, os.SEEK_END)

    def close(self) -> None:
        super().close()