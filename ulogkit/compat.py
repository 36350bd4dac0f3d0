"""Legacy reader interface built on top of the merging reader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from .cli import open_devices
from .core import Ulogcat
from .model import Flag, LogDevice, LogFormat, Options


@dataclass
class LegacyOptions:
    """Options of the legacy reader interface."""

    format: LogFormat = LogFormat.SHORT
    binary: bool = False
    clear: bool = False
    tail: int = 0
    getsize: bool = False
    rotate_size: int = 0
    rotate_logs: int = 0
    rotate_filename: Optional[str] = None
    dump: bool = False
    color: bool = False
    output_fd: int = -1


class LegacyUlogcat:
    """Legacy reader: devices are collected first, opened on first use."""

    def __init__(self, options: LegacyOptions) -> None:
        if options.binary or options.getsize or options.rotate_filename:
            raise ValueError(
                "binary output, size statistics and log rotation "
                "are not supported"
            )
        flags = Flag.ULOG
        if options.color:
            flags |= Flag.COLOR
        if options.dump:
            flags |= Flag.DUMP
        self.options = Options(
            format=LogFormat(options.format),
            flags=flags,
            tail=options.tail,
            output_fd=options.output_fd,
        )
        self.clear_buffers = bool(options.clear)
        self._devices: List[Union[str, LogDevice]] = []
        self._context: Optional[Ulogcat] = None

    def add_device(self, name: Union[str, LogDevice]) -> None:
        """Add a ulog buffer by name, or an already opened device."""
        self._devices.append(name)

    def _open(self) -> Ulogcat:
        if self._context is None:
            names = [d for d in self._devices if isinstance(d, str)]
            given = [d for d in self._devices if isinstance(d, LogDevice)]
            opened: List[LogDevice] = []
            if names or not given:
                opened = open_devices(self.options, names)
            self._context = Ulogcat(self.options, opened + given)
        return self._context

    def process_logs(self) -> int:
        """Clear the buffers, or output their entries; returns 0 when done."""
        context = self._open()
        if self.clear_buffers:
            context.clear()
            return 0
        while context.process_logs(0) > 0:
            pass
        return 0

    def strerror(self) -> str:
        """Error descriptions are no longer kept; always empty."""
        return ""

    def close(self) -> None:
        """Release devices and output."""
        if self._context is not None:
            self._context.close()
            self._context = None
        else:
            for device in self._devices:
                if isinstance(device, LogDevice):
                    device.close()
        self._devices.clear()