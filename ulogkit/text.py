"""Text rendering of log entries."""

from __future__ import annotations

import os
import time
from typing import Iterable, List, Optional, Union

from .model import DEFAULT_COLORS, Flag, Frame, LogEntry, LogFormat

ANSI_NONE = "\x1b[0m"
PRIORITY_CHARS = "  CEWNID"

_LEVELS = 8
_COLOR_MAX = 31
_INFO_LINE_MAX = 127


def parse_colors(spec: str) -> List[str]:
    """Turn a '|'-separated list of SGR parameters into 8 escape sequences."""
    fields = (spec.split("|") + [""] * _LEVELS)[:_LEVELS]
    return [f"\x1b[{seq}m"[:_COLOR_MAX] if seq else "" for seq in fields]


def render_csv(entry: LogEntry) -> str:
    """Render an entry as one CSV line, hex-dumping binary payloads."""
    payload = entry.message.hex() if entry.is_binary else entry.message
    prefix = "0x%08x,0x%08x,%d,0x%06x,%d,%s,%s,%d,%s,%d,%d," % (
        entry.tv_sec & 0xFFFFFFFF,
        entry.tv_nsec & 0xFFFFFFFF,
        entry.priority,
        entry.color & 0xFFFFFFFF,
        int(bool(entry.is_binary)),
        entry.tag,
        entry.pname,
        entry.pid,
        entry.tname,
        entry.tid,
        entry.payload_length,
    )
    return f"{prefix}{payload}\n"


def _timestamp(entry: LogEntry) -> str:
    stamp = time.strftime("%m-%d %H:%M:%S", time.localtime(entry.tv_sec))
    return f"{stamp}.{entry.tv_nsec // 1000000:03d}"


class TextRenderer:
    """Renders frames as text lines in one of the supported formats."""

    def __init__(
        self,
        fmt: Union[LogFormat, int] = LogFormat.ALIGNED,
        flags: Flag = Flag(0),
        colors: Optional[Union[str, Iterable[str]]] = None,
    ) -> None:
        self.format = fmt
        self.flags = Flag(flags)
        if colors is None:
            if self.flags & Flag.COLOR:
                colors = os.environ.get("ULOGCAT_COLORS", DEFAULT_COLORS)
            else:
                colors = [""] * _LEVELS
        if isinstance(colors, str):
            self.colors = parse_colors(colors)
        else:
            self.colors = (list(colors) + [""] * _LEVELS)[:_LEVELS]

    def render_banner(self, message: str) -> str:
        """Render the line marking where a device starts in merged output."""
        return "-" * 39 + f"{message}\n"

    def render(self, frame: Frame) -> Optional[str]:
        """Render a frame; None when the frame is not displayable as text."""
        entry = frame.entry
        if self.format == LogFormat.CSV:
            return render_csv(entry)
        if entry.is_binary:
            return None

        label = frame.device.label if frame.device is not None else "U"
        line = self._klog_line if label == "K" else self._ulog_line

        lines = []
        message = entry.message
        while True:
            head, newline, rest = message.partition("\n")
            lines.append(line(entry, head))
            if not newline or not rest:
                break
            message = rest
        return "".join(lines)

    def _decoration(self, entry: LogEntry, label: str):
        prio = entry.priority & 0x7
        colored = bool(self.flags & Flag.COLOR)
        cstart = self.colors[prio] if colored else ""
        cend = ANSI_NONE if colored else ""
        clabel = f"{label} " if self.flags & Flag.SHOW_LABEL else ""
        return cstart, clabel, PRIORITY_CHARS[prio], cend

    def _ulog_line(self, entry: LogEntry, message: str) -> str:
        cstart, clabel, cprio, cend = self._decoration(entry, "U")
        threaded = entry.pid != entry.tid
        sep = "/" if threaded else ""
        tname = entry.tname if threaded else ""

        if self.format == LogFormat.SHORT:
            return f"{cstart}{clabel}{cprio} {entry.tag:<12}: {message}{cend}\n"
        if self.format == LogFormat.PROCESS:
            return (
                f"{cstart}{clabel}{cprio} {entry.tag:<12}"
                f"({entry.pname}{sep}{tname}): {message}{cend}\n"
            )
        if self.format == LogFormat.LONG:
            if threaded:
                info = (
                    f"{entry.tag:<12}({entry.pname}-{entry.pid}"
                    f"/{entry.tname}-{entry.tid})"
                )
            else:
                info = f"{entry.tag:<12}({entry.pname}-{entry.pid})"
            info = info[:_INFO_LINE_MAX]
            return (
                f"{cstart}{clabel}{_timestamp(entry)} {cprio} "
                f"{info:<45}: {message}{cend}\n"
            )
        info = f"{entry.tag:<12}({entry.pname}{sep}{tname})"[:_INFO_LINE_MAX]
        return f"{cstart}{clabel}{cprio} {info:<45}: {message}{cend}\n"

    def _klog_line(self, entry: LogEntry, message: str) -> str:
        cstart, clabel, cprio, cend = self._decoration(entry, "K")

        if self.format in (LogFormat.SHORT, LogFormat.PROCESS):
            return f"{cstart}{clabel}{cprio} {entry.tag:<12}: {message}{cend}\n"
        if self.format == LogFormat.LONG:
            return (
                f"{cstart}{clabel}{_timestamp(entry)} {cprio} "
                f"{entry.tag:<45}: {message}{cend}\n"
            )
        return f"{cstart}{clabel}{cprio} {entry.tag:<45}: {message}{cend}\n"