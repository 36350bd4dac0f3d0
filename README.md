# ulogkit

ulogkit reads and handles ulog messages on Linux systems. It reads entries
from ulogger devices (`/dev/ulog_*`) and from the kernel ring buffer
(`/dev/kmsg`). When there are several sources, it merges their entries in
timestamp order. Each entry is rendered as text or CSV and written to an
output stream or file descriptor.

The package uses only the standard library. It needs Linux, because it relies
on `fcntl`, `select.poll` and the ulogger device ioctls.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Commands

### ulogcat

`ulogcat` works like Android's `logcat`, for ulog buffers and kernel messages.

```
ulogcat [options]
```

| Option        | Meaning                                                                  |
|---------------|--------------------------------------------------------------------------|
| `-v <format>` | Output format: `short`, `aligned` (default), `process`, `long` or `csv`  |
| `-c`          | Clear (flush) the selected buffers and exit                              |
| `-d`          | Dump the current contents and exit instead of blocking                   |
| `-k`          | Include kernel ring buffer messages                                      |
| `-u`          | Include ulog messages (used when neither `-k` nor `-u` is given)         |
| `-l`          | Prefix each line with `U` or `K` to show where it came from              |
| `-b <buffer>` | Read one ulog buffer, such as `main`; may be repeated                    |
| `-C`          | Show priority levels with ANSI colours                                   |
| `-t <n>`      | Show only the last `<n>` lines                                           |
| `-h`          | Show help                                                                |

If no `-b` is given, every buffer listed in
`/sys/devices/virtual/misc/ulog_main/logs` is read. If that file is missing,
only `main` is read. With `-k`, kernel messages are read from `/dev/kmsg`. If
that fails, they are read from the `kmsgd` ulog buffer instead.

This example dumps the last 20 lines of the `main` buffer together with kernel
messages, labelled and in long format:

```
ulogcat -d -k -b main -l -v long -t 20
```

When entries come from more than one device, a banner line marks where each
device's first entry appears in the merged output.

The `ULOGCAT_COLORS` environment variable sets the colours used with `-C`. It
holds up to eight ANSI SGR sequences, one per priority level, separated by `|`.
A sequence may be empty. The default is:

```
ULOGCAT_COLORS='||4;1;31|1;31|1;33|35||1;30'
```

If a device cannot be opened or an output write fails, the command prints the
error and exits with status 255.

### ulogwrapper

`ulogwrapper` starts a program with its syslog output sent to ulog:

```
ulogwrapper /usr/bin/some-daemon --its-options
```

If the ulog device can be opened for writing, `/usr/lib/libulog_syslogwrap.so`
is added to the front of `LD_PRELOAD` and `ULOG_NOSYSLOG=yes` is set. This is
skipped if the library is already in `LD_PRELOAD`. The given program then
replaces the current process. The `ULOG_DEVICE` environment variable chooses a
device other than `main`.

## Library

- `ulogkit.core.Ulogcat` merges entries from a list of `LogDevice` objects and
  writes them out. It supports dump mode (`Flag.DUMP`) and tail mode
  (`Options.tail`). It is a context manager. `process_logs(max_entries)`
  returns 0 once a dump is complete and raises `OSError` if output fails.
  `clear()` clears every device, and `close()` closes the devices and the
  output.
- `ulogkit.model` holds the shared types: `LogFormat`, `Flag`, `Options`,
  `LogEntry`, `Frame` and `LogDevice`. A `LogDevice` delegates reading,
  parsing and clearing to callables it is given.
- `ulogkit.cli.parse_args` turns command-line arguments into
  `(options, clear, buffer_names)`. `ulogkit.cli.open_devices` opens the
  devices those options ask for. `parse_log_format`, `ulog_device_path` and
  `list_ulog_devices` are the helpers behind them.
- `ulogkit.text.TextRenderer`, `ulogkit.text.render_csv` and
  `ulogkit.text.parse_colors` turn frames and entries into output lines.
- `ulogkit.klog` parses `/dev/kmsg` records and kmsgd-wrapped kernel lines. It
  provides `parse_kmsg_record`, `unescape_kmsg`, `parse_prefix`,
  `parse_timestamp` and `kmsgd_fix_entry`. It also has the `KlogDevice` reader.
- `ulogkit.levels` converts priority levels between letters, digits, numbers
  and colours with `parse_level`, `char_to_level`, `level_to_char` and
  `level_to_color`. `parse_int32` and `parse_time` parse numbers and
  `SECONDS[ NANOSECONDS]` time prefixes.
- `ulogkit.registry.TagRegistry` is a thread-safe, in-process registry of
  `Cookie` tags, each with its own level. The same module has
  `parse_tag_level`, `prio_to_char` and `mask_to_level`. `mask_to_level` maps a
  syslog priority mask to a level.
- `ulogkit.compat.LegacyUlogcat` provides the older one-shot interface,
  configured with `LegacyOptions`. It raises `ValueError` for binary output,
  size statistics and log rotation, none of which it supports.

This example unescapes a kernel message:

```python
from ulogkit.klog import unescape_kmsg

print(unescape_kmsg(r"tab\x09here"))
```

## What ulogkit does not do

- It only reads entries from ulog buffers. It cannot write them, and it has no
  command for sending messages to ulog.
- The syslog redirection library that `ulogwrapper` preloads is not part of
  this package. It must already be installed at
  `/usr/lib/libulog_syslogwrap.so`.
- `TagRegistry` only controls tag levels inside the current process. There is
  no client or server for changing tag levels in another running process.
- Clearing a kernel device (`KlogDevice.clear`, or `ulogcat -c -k` when
  `/dev/kmsg` is used) only skips the records this reader has not read yet.
  The kernel ring buffer itself is not emptied.