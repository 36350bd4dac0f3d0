"""Run a program with its syslog calls redirected to ulog."""

from __future__ import annotations

import os
import sys
from typing import Dict, Mapping, Optional, Sequence

WRAPPER = "/usr/lib/libulog_syslogwrap.so"
ULOG_MAIN_DEVICE = "/dev/ulog_main"

EXIT_FAILURE = 1

_DEVICE_PATH_MAX = 31
_PRELOAD_MAX = 4095


def _device_path(environ: Mapping[str, str]) -> str:
    name = environ.get("ULOG_DEVICE")
    if name is None:
        return ULOG_MAIN_DEVICE
    return f"/dev/ulog_{name}"[:_DEVICE_PATH_MAX]


def _device_writable(path: str) -> bool:
    try:
        fd = os.open(path, os.O_WRONLY)
    except OSError:
        return False
    os.close(fd)
    return True


def wrap_environment(environ: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of ``environ`` that preloads the syslog wrapper."""
    env = dict(environ)
    libs = env.get("LD_PRELOAD")
    if libs is not None:
        if WRAPPER in libs:
            # already wrapped
            return env
        env["LD_PRELOAD"] = f"{WRAPPER} {libs}"[:_PRELOAD_MAX]
    else:
        env["LD_PRELOAD"] = WRAPPER
    # disable the syslog fallback of the wrapped program
    env["ULOG_NOSYSLOG"] = "yes"
    return env


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Replace this process with the given program; returns only on failure."""
    if argv is None:
        argv = sys.argv[1:]
    args = list(argv)
    if not args:
        print("Usage: ulogwrapper <filename> <args>", file=sys.stderr)
        return EXIT_FAILURE

    environ = dict(os.environ)
    if _device_writable(_device_path(environ)):
        environ = wrap_environment(environ)

    try:
        os.execve(args[0], args, environ)
    except OSError as exc:
        print(f"execve('{args[0]}'): {exc.strerror}", file=sys.stderr)
        return 255
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())