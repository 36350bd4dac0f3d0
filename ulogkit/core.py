"""Merging reader: interleaves entries from several log devices by time."""

from __future__ import annotations

import errno
import os
import select
import sys
from collections import deque
from typing import Deque, Iterable, List, Optional

from .model import Flag, Frame, LogDevice, Options
from .text import TextRenderer


class Ulogcat:
    """Reads, merges, renders and outputs entries from log devices."""

    def __init__(self, options: Optional[Options] = None,
                 devices: Iterable[LogDevice] = ()) -> None:
        self.options = options if options is not None else Options()
        self.flags = Flag(self.options.flags)
        self.tail = self.options.tail
        self.renderer = TextRenderer(self.options.format, self.flags)
        self._output = self.options.output
        self._output_fd = self.options.output_fd
        if self._output is None and self._output_fd < 0:
            self._output = sys.stdout
        self.devices: List[LogDevice] = []
        self._pending: List[Frame] = []
        self._render: Deque[Frame] = deque()
        self.mark_reached = False
        self._output_error: Optional[BaseException] = None
        self._closed = False
        for device in devices:
            self.add_device(device)
        if not self.devices:
            raise ValueError("could not open any device")

    @property
    def device_count(self) -> int:
        return len(self.devices)

    def add_device(self, device: LogDevice) -> None:
        """Add a device to the merged stream."""
        device.index = len(self.devices)
        self.devices.append(device)

    # output

    def _output_text(self, text: str) -> None:
        if self._output_error is not None:
            return
        try:
            if self._output is not None:
                self._output.write(text)
                self._output.flush()
            elif self._output_fd >= 0:
                data = text.encode("utf-8", "surrogateescape")
                while data:
                    data = data[os.write(self._output_fd, data):]
        except (OSError, ValueError) as exc:
            self._output_error = exc

    def _flush_frame(self, frame: Frame) -> None:
        device = frame.device
        if device is not None and not device.printed and self.device_count > 1:
            banner = f"------------- beginning of {device.path}"
            self._output_text(self.renderer.render_banner(banner))
            device.printed = True
        if device is not None:
            try:
                frame = device.parse(frame)
            except ValueError:
                return
        text = self.renderer.render(frame)
        if text is not None:
            self._output_text(text)

    # queues

    def _oldest_pending(self) -> Optional[Frame]:
        if not self._pending:
            return None
        return min(self._pending, key=lambda f: f.stamp)

    def _take_oldest_pending(self) -> Optional[Frame]:
        frame = self._oldest_pending()
        if frame is not None:
            self._pending.remove(frame)
            if frame.device is not None:
                frame.device.pending = False
        return frame

    def _flush_pending_queue(self) -> None:
        while self._pending:
            self._flush_frame(self._take_oldest_pending())

    def _enqueue_render(self, frame: Frame) -> None:
        self._render.append(frame)
        if len(self._render) > self.tail:
            # keep the queue from growing beyond the wanted tail
            self._render.popleft()

    def _update_mark_reached(self) -> None:
        if self.mark_reached:
            return
        if all(dev.mark_readable <= 0 for dev in self.devices):
            self.mark_reached = True

    def _process_tail_flush(self) -> None:
        if not self.tail or not self.mark_reached:
            return
        while len(self._render) + len(self._pending) > self.tail:
            if self._render:
                self._render.popleft()
            else:
                self._take_oldest_pending()
        while self._render:
            self._flush_frame(self._render.popleft())
        self.tail = 0

    def _process_devices(self, timeout_ms: Optional[int]) -> int:
        """Read one entry per readable device and flush the oldest one."""
        poller = select.poll()
        polled = set()
        for dev in self.devices:
            fd = dev.fileno()
            if not dev.pending and fd >= 0:
                poller.register(fd, select.POLLIN)
                polled.add(dev.index)

        if self._pending or (not self.mark_reached and self.tail > 0):
            timeout_ms = 0

        events = dict(poller.poll(timeout_ms))

        frames = 0
        for dev in self.devices:
            readable = dev.index in polled and events.get(dev.fileno(), 0) & select.POLLIN
            if not readable:
                if dev.index in polled and dev.mark_readable > 0:
                    # nothing more to read: the mark is reached for this device
                    dev.mark_readable = 0
                continue
            frame = dev.receive()
            if frame is None:
                return 0
            if frame.device is None:
                frame.device = dev
            self._pending.append(frame)
            dev.pending = True
            frames += 1

        frame = self._take_oldest_pending()
        if frame is not None:
            if self.tail > 0:
                self._enqueue_render(frame)
            else:
                self._flush_frame(frame)

        self._update_mark_reached()
        self._process_tail_flush()
        return frames

    def process_logs(self, max_entries: int = 0) -> int:
        """Read, render and output entries.

        Returns 0 when everything has been processed (dump mode), a positive
        count when more work is needed. Stops after ``max_entries`` frames
        when it is non-zero. Raises OSError when output fails.
        """
        dump = bool(self.flags & Flag.DUMP)
        timeout_ms = 0 if dump else None
        frames = 0
        while True:
            ret = self._process_devices(timeout_ms)
            frames += ret
            if dump and self.mark_reached:
                self._flush_pending_queue()
                return 0
            if self._output_error is not None:
                raise OSError(errno.EIO, "cannot output frame") from self._output_error
            if max_entries and frames >= max_entries:
                return ret

    def clear(self) -> None:
        """Clear the buffers of every device."""
        for dev in self.devices:
            dev.clear()

    def close(self) -> None:
        """Close devices and the output."""
        if self._closed:
            return
        self._closed = True
        for dev in self.devices:
            dev.close()
        self.devices.clear()
        self._render.clear()
        self._pending.clear()
        if self._output_fd >= 0:
            try:
                os.close(self._output_fd)
            except OSError:
                pass
            self._output_fd = -1
        if self._output is not None and self._output not in (
            sys.stdout, sys.stderr, sys.__stdout__, sys.__stderr__
        ):
            self._output.close()
        self._output = None

    def __enter__(self) -> "Ulogcat":
        return self

    def __exit__(self, *args) -> None:
        self.close()