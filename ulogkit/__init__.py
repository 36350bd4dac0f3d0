"""Read, merge and render ulogger and kernel log buffers, with level helpers."""

__version__ = "3.0.0"