"""Command-line log reader and ulog device discovery."""

from __future__ import annotations

import errno
import fcntl
import getopt
import os
import re
import struct
import sys
from typing import Iterable, List, Optional, Sequence, Tuple

from .core import Ulogcat
from .klog import KlogDevice, kmsgd_fix_entry
from .model import (
    KMSGD_ULOG_NAME,
    Flag,
    Frame,
    LogDevice,
    LogEntry,
    LogFormat,
    Options,
)

ULOG_DEVICE_PREFIX = "/dev/ulog_"
ULOG_LOGS_ATTRIBUTE = "/sys/devices/virtual/misc/ulog_main/logs"
ULOGGER_LOG_MAIN = "ulog_main"

ULOGGER_GET_LOG_LEN = (0xAE << 8) | 2
ULOGGER_FLUSH_LOG = (0xAE << 8) | 4

EXIT_FAILURE = 255

_PATH_MAX = 63
_FRAME_BUFSIZE = 200
_ENTRY_MAX_LEN = 4096
_HEADER = struct.Struct("=HHiiiii")
_PRIO = struct.Struct("=I")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_FORMATS = {
    "short": LogFormat.SHORT,
    "aligned": LogFormat.ALIGNED,
    "process": LogFormat.PROCESS,
    "long": LogFormat.LONG,
    "csv": LogFormat.CSV,
}

_USAGE = """\
Usage: {cmd} [options]
options include:
  -v <format>     Sets the log print format, where <format> is one of:

                  short aligned process long csv

  -c              Clear (flush) the entire log and exit.
  -d              Dump the log and then exit (don't block)
  -k              Include kernel ring buffer messages in output.
  -u              Include ulog messages in output (this is the default if
                  none of options -k and -u are specified).
  -l              Prefix each message with letter 'U' or 'K' to indicate
                  its origin (Ulog, Kernel). This is useful to split
                  an interleaved output.
  -b <buffer>     Request alternate ulog buffer, 'main', 'balboa', etc.
                  Multiple -b parameters are allowed and the results are
                  interleaved. The default is to show all buffers.
  -C              Use ANSI color sequences to show priority levels; you can customize colors
                  used for each level with environment variable ULOGCAT_COLORS, which contains
                  (possibly empty) sequences for each of the 8 levels, separated by character
                  '|'. Default value: ULOGCAT_COLORS='||4;1;31|1;31|1;33|35||1;30'.
  -t <n>          Skip entries and show only <n> tail lines
  -h              Show this help
"""


def _show_usage() -> None:
    print(_USAGE.format(cmd="ulogcat"), file=sys.stderr)


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_log_format(name: str) -> LogFormat:
    """Return the format called ``name``; raise ValueError if unknown."""
    try:
        return _FORMATS[name]
    except KeyError:
        raise ValueError(f"unknown log format: {name!r}") from None


def parse_args(argv: Sequence[str]) -> Tuple[Options, bool, List[str]]:
    """Parse command-line arguments into (options, clear, buffer names).

    Raises SystemExit for -h and for invalid arguments.
    """
    try:
        opts, _ = getopt.gnu_getopt(list(argv), "b:Ccdhklt:uv:")
    except getopt.GetoptError:
        print("Unrecognized option", file=sys.stderr)
        _show_usage()
        raise SystemExit(EXIT_FAILURE) from None

    options = Options(format=LogFormat.ALIGNED)
    flags = Flag(0)
    clear = False
    names: List[str] = []
    for opt, value in opts:
        if opt == "-c":
            clear = True
        elif opt == "-d":
            flags |= Flag.DUMP
        elif opt == "-C":
            flags |= Flag.COLOR
        elif opt == "-k":
            flags |= Flag.KLOG
        elif opt == "-u":
            flags |= Flag.ULOG
        elif opt == "-l":
            flags |= Flag.SHOW_LABEL
        elif opt == "-b":
            names.append(value)
            flags |= Flag.ULOG
        elif opt == "-t":
            options.tail = _atoi(value)
        elif opt == "-h":
            _show_usage()
            raise SystemExit(0)
        elif opt == "-v":
            try:
                options.format = parse_log_format(value)
            except ValueError:
                print("Invalid parameter to -v", file=sys.stderr)
                _show_usage()
                raise SystemExit(EXIT_FAILURE) from None

    if not flags & (Flag.ULOG | Flag.KLOG):
        # default output is ulog buffers
        flags |= Flag.ULOG
    options.flags = flags
    return options, clear, names


def ulog_device_path(name: str) -> str:
    """Path of the ulog device holding buffer ``name``."""
    return f"{ULOG_DEVICE_PREFIX}{name}"[:_PATH_MAX]


def list_ulog_devices(text: str) -> List[str]:
    """Buffer names listed in the ulog 'logs' attribute, kmsgd excluded."""
    names = []
    for line in text.splitlines(keepends=True):
        space = line.find(" ")
        if space < 5 or len(line) <= 5:
            continue
        name = line[5:space]
        if name != KMSGD_ULOG_NAME:
            names.append(name)
    return names


def _cstring(buf: bytes) -> Tuple[str, bytes]:
    end = buf.find(b"\0")
    if end < 0:
        raise OSError(errno.EIO, "invalid ulog entry")
    return buf[:end].decode("utf-8", "surrogateescape"), buf[end + 1:]


def _decode_entry(data: bytes) -> LogEntry:
    if len(data) < _HEADER.size:
        raise OSError(errno.EIO, "truncated ulog entry")
    length, _hdr_size, pid, tid, sec, nsec, _euid = _HEADER.unpack_from(data)
    if length != len(data) - _HEADER.size:
        raise OSError(errno.EIO,
                      f"unexpected length {len(data) - _HEADER.size}")
    pname, rest = _cstring(data[_HEADER.size:])
    tname, rest = _cstring(rest)
    if len(rest) < _PRIO.size:
        raise OSError(errno.EIO, "invalid ulog entry")
    (prio,) = _PRIO.unpack_from(rest)
    tag, rest = _cstring(rest[_PRIO.size:])
    is_binary = bool((prio >> 7) & 1)
    if is_binary:
        message = bytes(rest)
    else:
        message = rest.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
    return LogEntry(
        tv_sec=sec, tv_nsec=nsec, priority=prio & 0x7,
        pid=pid, pname=pname, tid=tid, tname=tname, tag=tag,
        message=message, is_binary=is_binary, color=(prio >> 8) & 0xFFFFFF,
    )


def _read_entry(device: LogDevice) -> Optional[bytes]:
    try:
        try:
            data = os.read(device.fd, _FRAME_BUFSIZE)
        except OSError as exc:
            if exc.errno != errno.EINVAL:
                raise
            # regular buffer is too small for this entry
            data = os.read(device.fd, _ENTRY_MAX_LEN)
    except (BlockingIOError, InterruptedError):
        return None
    if not data:
        raise OSError(errno.EIO, "unexpected EOF", device.path)
    return data


def _ulog_receiver(csv: bool):
    def receive(device: LogDevice) -> Optional[Frame]:
        data = _read_entry(device)
        if data is None:
            return None
        entry = _decode_entry(data)
        frame = Frame(entry=entry, device=device,
                      stamp=entry.tv_sec * 1000000 + entry.tv_nsec // 1000)
        # "dropped entries" notices do not count towards the mark
        if entry.pid != -1 or entry.tid != -1:
            device.mark_readable -= len(data)
        if entry.is_binary and not csv:
            return None
        return frame

    return receive


def _parse_kmsgd(frame: Frame) -> Frame:
    kmsgd_fix_entry(frame.entry)
    return frame


def _clear_ulog(device: LogDevice) -> None:
    fd = os.open(device.path, os.O_WRONLY | os.O_NONBLOCK)
    try:
        fcntl.ioctl(fd, ULOGGER_FLUSH_LOG)
    finally:
        os.close(fd)


def _open_ulog_device(name: str, log_format: LogFormat) -> LogDevice:
    path = ulog_device_path(name)
    fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
    try:
        mark = fcntl.ioctl(fd, ULOGGER_GET_LOG_LEN)
    except OSError:
        os.close(fd)
        raise
    device = LogDevice(
        path, fd, "U", mark,
        receiver=_ulog_receiver(log_format == LogFormat.CSV),
        clearer=_clear_ulog,
    )
    if name == KMSGD_ULOG_NAME:
        # kmsgd buffer wraps kernel messages and needs more processing
        device._parser = _parse_kmsgd
        device.label = "K"
        device.path = "/proc/kmsg"
    return device


def _all_ulog_names() -> List[str]:
    try:
        with open(ULOG_LOGS_ATTRIBUTE, encoding="utf-8",
                  errors="surrogateescape") as attribute:
            return list_ulog_devices(attribute.read())
    except OSError:
        return [ULOGGER_LOG_MAIN[5:]]


def open_devices(options: Options, names: Iterable[str] = ()) -> List[LogDevice]:
    """Open the devices that ``options`` and the buffer ``names`` ask for."""
    flags = Flag(options.flags)
    log_format = LogFormat(options.format)
    devices: List[LogDevice] = []
    try:
        ulog_count = 0
        for name in names:
            if name != KMSGD_ULOG_NAME:
                devices.append(_open_ulog_device(name, log_format))
                ulog_count += 1
        if not ulog_count and flags & Flag.ULOG:
            for name in _all_ulog_names():
                devices.append(_open_ulog_device(name, log_format))
        if flags & Flag.KLOG:
            try:
                devices.append(KlogDevice())
            except OSError:
                # older kernels: kmsgd copies kernel messages to a ulog buffer
                devices.append(_open_ulog_device(KMSGD_ULOG_NAME, log_format))
    except BaseException:
        for device in devices:
            device.close()
        raise
    if not devices:
        raise ValueError("could not open any device")
    return devices


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the log reader; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    options, clear, names = parse_args(argv)
    options.output = sys.stdout

    try:
        context = Ulogcat(options, open_devices(options, names))
    except (OSError, ValueError) as exc:
        print(f"ulogcat: {exc}", file=sys.stderr)
        print("ulogcat: cannot open ulogcat context", file=sys.stderr)
        return EXIT_FAILURE

    with context:
        try:
            if clear:
                context.clear()
                return 0
            while context.process_logs(0) > 0:
                pass
        except OSError as exc:
            print(f"ulogcat: {exc}", file=sys.stderr)
            return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())