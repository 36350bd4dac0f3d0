import os

import pytest

from ulogkit.model import (
    Flag,
    Frame,
    LogDevice,
    LogEntry,
    LogFormat,
    Options,
    ULOG_INFO,
)


def test_format_values_follow_header_order():
    assert [f.value for f in LogFormat] == [0, 1, 2, 3, 4]
    assert LogFormat(4) is LogFormat.CSV


def test_flag_bits():
    assert Flag(1 << 2) is Flag.DUMP
    assert Flag(1 << 7) is Flag.KLOG
    combined = Flag((1 << 5) | (1 << 7))
    assert combined == Flag.ULOG | Flag.KLOG
    assert combined & Flag.KLOG
    assert not combined & Flag.DUMP


def test_options_defaults():
    opts = Options()
    assert opts.output_fd == -1
    assert opts.tail == 0
    assert opts.output is None


def test_frames_do_not_share_entries():
    a = Frame()
    b = Frame()
    a.entry.tag = "changed"
    assert b.entry.tag == ""


def test_payload_length_text_and_binary():
    assert LogEntry(message="abc").payload_length == len("abc")
    assert LogEntry(message=b"\x01\x02", is_binary=True).payload_length == 4


def test_receive_uses_receiver():
    frame = Frame(entry=LogEntry(priority=ULOG_INFO, tag="t"))
    dev = LogDevice("/dev/ulog_main", receiver=lambda d: frame)
    assert dev.receive() is frame


def test_receiver_gets_device():
    seen = []
    dev = LogDevice("/dev/ulog_main", receiver=lambda d: seen.append(d))
    assert dev.receive() is None
    assert seen == [dev]


def test_receive_without_receiver_raises():
    with pytest.raises(OSError):
        LogDevice("/dev/none").receive()


def test_parse_defaults_to_identity():
    frame = Frame(entry=LogEntry(tag="x"))
    dev = LogDevice("/dev/ulog_main")
    assert dev.parse(frame) is frame
    assert frame.entry.tag == "x"


def test_parse_uses_parser():
    def parser(frame):
        frame.entry.tag = "KERNEL"
        return frame

    dev = LogDevice("/dev/ulog_kmsgd", parser=parser)
    assert dev.parse(Frame()).entry.tag == "KERNEL"


def test_clear_without_clearer_raises():
    with pytest.raises(OSError):
        LogDevice("/dev/none").clear()


def test_clear_uses_clearer():
    cleared = []
    dev = LogDevice("/dev/ulog_main", clearer=cleared.append)
    dev.clear()
    assert cleared == [dev]


def test_close_closes_descriptor():
    r, w = os.pipe()
    try:
        dev = LogDevice("pipe", fd=r)
        assert dev.fileno() == r
        dev.close()
        assert dev.fileno() == -1
        with pytest.raises(OSError):
            os.fstat(r)
        dev.close()
        assert dev.fileno() == -1
    finally:
        os.close(w)


def test_device_initial_state():
    dev = LogDevice("/dev/kmsg", label="K", mark_readable=10)
    assert dev.label == "K"
    assert dev.mark_readable == 10
    assert dev.printed is False
    assert dev.pending is False