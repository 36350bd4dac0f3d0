import os

import pytest

from ulogkit.compat import LegacyOptions, LegacyUlogcat
from ulogkit.model import Flag, Frame, LogDevice, LogEntry


def make_device(items, path="fake"):
    """A pipe-backed device yielding (message, stamp) items in order."""
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b"x" * len(items))
    os.close(write_fd)
    queue = [
        Frame(
            entry=LogEntry(tag="test", pname="proc", pid=1, tid=1,
                           priority=6, message=message),
            stamp=stamp,
        )
        for message, stamp in items
    ]
    cleared = []

    def receive(dev):
        os.read(dev.fd, 1)
        dev.mark_readable -= 1
        return queue.pop(0)

    device = LogDevice(path, read_fd, "U", len(items), receiver=receive,
                       clearer=cleared.append)
    return device, cleared


def open_output(tmp_path):
    path = tmp_path / "out.log"
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    return path, fd


def messages(path):
    lines = path.read_text().splitlines()
    return [line.rsplit(": ", 1)[1] for line in lines if not line.startswith("-")]


def test_options_are_mapped_to_flags():
    reader = LegacyUlogcat(LegacyOptions(color=True, dump=True, tail=3))
    assert reader.options.flags == Flag.ULOG | Flag.COLOR | Flag.DUMP
    assert reader.options.tail == 3


@pytest.mark.parametrize(
    "options",
    [
        LegacyOptions(binary=True),
        LegacyOptions(getsize=True),
        LegacyOptions(rotate_filename="logs"),
    ],
)
def test_unsupported_options_are_rejected(options):
    with pytest.raises(ValueError):
        LegacyUlogcat(options)


def test_strerror_is_empty():
    assert LegacyUlogcat(LegacyOptions()).strerror() == ""


def test_dump_outputs_every_entry(tmp_path):
    path, fd = open_output(tmp_path)
    device, _ = make_device([("hello0", 1), ("hello1", 2), ("hello2", 3)])
    reader = LegacyUlogcat(LegacyOptions(dump=True, output_fd=fd))
    reader.add_device(device)
    assert reader.process_logs() == 0
    reader.close()
    assert messages(path) == ["hello0", "hello1", "hello2"]


def test_tail_keeps_last_lines(tmp_path):
    path, fd = open_output(tmp_path)
    device, _ = make_device([(f"m{i}", i) for i in range(5)])
    reader = LegacyUlogcat(LegacyOptions(dump=True, tail=2, output_fd=fd))
    reader.add_device(device)
    assert reader.process_logs() == 0
    reader.close()
    assert messages(path) == ["m3", "m4"]


def test_tail_larger_than_buffer_keeps_everything(tmp_path):
    path, fd = open_output(tmp_path)
    device, _ = make_device([(f"m{i}", i) for i in range(3)])
    reader = LegacyUlogcat(LegacyOptions(dump=True, tail=10, output_fd=fd))
    reader.add_device(device)
    assert reader.process_logs() == 0
    reader.close()
    assert messages(path) == ["m0", "m1", "m2"]


def test_devices_are_merged_by_timestamp(tmp_path):
    path, fd = open_output(tmp_path)
    first, _ = make_device([("a1", 1), ("a3", 3)], path="first")
    second, _ = make_device([("b2", 2), ("b4", 4)], path="second")
    reader = LegacyUlogcat(LegacyOptions(dump=True, output_fd=fd))
    reader.add_device(first)
    reader.add_device(second)
    assert reader.process_logs() == 0
    reader.close()
    assert messages(path) == ["a1", "b2", "a3", "b4"]
    banners = [line for line in path.read_text().splitlines()
               if "beginning of" in line]
    assert len(banners) == 2
    assert banners[0].endswith("first")
    assert banners[1].endswith("second")


def test_clear_flushes_devices_without_output(tmp_path):
    path, fd = open_output(tmp_path)
    device, cleared = make_device([("hello", 1)])
    reader = LegacyUlogcat(LegacyOptions(clear=True, output_fd=fd))
    reader.add_device(device)
    assert reader.process_logs() == 0
    reader.close()
    assert cleared == [device]
    assert path.read_text() == ""


def test_close_without_processing_closes_devices():
    device, _ = make_device([("hello", 1)])
    reader = LegacyUlogcat(LegacyOptions())
    reader.add_device(device)
    reader.close()
    assert device.fd == -1