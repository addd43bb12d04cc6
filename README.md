# bglog

An asynchronous logger. Log calls hand entries to a background worker
(`bglog.logworker.LogWorker`). The worker passes a copy of each entry to
every registered sink, and each sink receives it on its own background
thread. The package includes a file sink. Log levels can be switched on
and off while the program runs. Contract checks record a broken contract
as a fatal entry.

## Installation

```
pip install bglog
```

## Quick start

```python
from bglog.levels import INFO, WARNING
from bglog.logworker import LogWorker
from bglog.core import initialize_logging
from bglog.capture import log, logf, log_if, check

with LogWorker.create() as worker:
    handle = worker.add_default_logger("myapp", "/tmp/logs", "bglog")
    initialize_logging(worker)

    log(INFO, "started with ", 3, " workers")
    logf(WARNING, "disk at %d%%", 91)
    log_if(INFO, False, "this line is skipped")

    check(1 + 1 == 2, "arithmetic still works", expression="1 + 1 == 2")
```

Each call site is recorded with the entry: the file name, the line and
the function of the caller.

`initialize_logging` raises `RuntimeError` in two cases: when logging is
already initialized, and when it is given `None`.

Before initialization, only the first entry is kept. It is printed to
stderr with the prefix `LOGGER NOT INITIALIZED:` and is handed to the
worker once logging is initialized. Any further entries made before
initialization are dropped.

When the worker closes, logging is shut down first. The worker then
delivers every entry queued so far and closes its sinks. Log calls made
after that are ignored, and it is safe to make them.

## Capturing entries

`bglog.capture` provides these functions:

- `log(level, *args)` joins the text of `args` with no separator.
- `logf(level, fmt, *args)` formats printf-style, using Python's `%` operator.
- `log_if` and `logf_if` log only when a condition holds.
- `check(condition, *args, expression="")` and
  `checkf(condition, fmt, *args, expression="")` record a fatal `CONTRACT`
  entry when the condition is false.

Printf-style messages are limited to 2048 characters. Longer messages are
cut and end with `[...truncated...]`. You can change the limit with
`set_max_message_size`. If a format string cannot be applied, a parse
error note is logged in its place.

`LogCapture` can be used directly. Call `write(...)` or `capturef(...)`,
then `commit()`, or use it as a context manager, which commits on a clean
exit.

## Entries

`bglog.message.LogMessage` holds these fields:

- the file name, the full path, the line and the function
- the level
- the message
- the calling thread
- the time of creation

`to_string()` formats the entry according to its level:

- ordinary entries
- `LOG(FATAL)` entries
- broken contracts
- fatal signals and exceptions
- unknown fatal levels

The details prefix comes from `default_log_details` by default. You can
pass `full_log_details`, which also names the thread, or a function of
your own.

`FatalMessage` adds the signal the program exits with. `reason()` returns
the name of that signal.

## Log files

`bglog.filesink.FileSink` writes to
`<prefix>.<logger_id>.<YYYYmmdd-HHMMSS>.log` in the directory it is given.
If the file cannot be opened there, it falls back to the current
directory. `OSError` is raised if neither location can be opened.

Prefixes are cleaned up before use: whitespace, slashes, dots and colons
are removed. A prefix that is still invalid raises `ValueError`.

The sink buffers entries and writes them out every
`write_to_log_every_x_message` entries (100 by default). When it closes,
it writes out anything still buffered, followed by a shutdown line. A
header is written before the first entry.

You can move logging to a new file with `change_log_file(directory,
logger_id)`, which returns the new path, or `""` on failure. You can
change the layout with `override_log_details` and `override_log_header`.

The module also has helper functions:

- `is_valid_filename`
- `prefix_sanity_fix`
- `path_sanity_fix`
- `create_log_file_name`
- `header`

## Custom sinks

`LogWorker.add_sink(real_sink, call)` registers any object. `call` is a
method, or the name of a method, that receives each `LogMessage`:

```python
class Collector:
    def __init__(self):
        self.lines = []

    def receive(self, message):
        self.lines.append(message.to_string())

handle = worker.add_sink(Collector(), "receive")
future = handle.call(lambda sink: len(sink.lines))
print(future.result())
```

`add_sink` returns a `SinkHandle`. It holds only a weak reference to the
sink. `handle.call(method, *args)` runs `method` on the sink's own
background thread and returns a `concurrent.futures.Future`. The future
fails with `RuntimeError` once the sink is gone.

If the real sink has a `close()` method, it is called when the sink is
closed.

`bglog.sink.Sink` can also be built directly. With `accepts_text=True`, it
passes the formatted string instead of the `LogMessage`.

## Levels

`bglog.levels` defines `Level` and the standard levels:

| Level | Value |
| --- | --- |
| `DEBUG` | 100 |
| `INFO` | 300 |
| `WARNING` | 500 |
| `FATAL` | 1000 |

It also defines the internal levels `CONTRACT`, `FATAL_SIGNAL` and
`FATAL_EXCEPTION`. `was_fatal(level)` is true for values of 1000 and above.

A process-wide `LevelRegistry` decides which levels are logged. It starts
with the four standard levels, all enabled; levels that are not
registered are not logged. The module-level functions act on it:

- `add_log_level` and `reset_levels`
- `enable` and `disable`
- `enable_all` and `disable_all`
- `set_highest`
- `get_status`, which returns `Status.ABSENT`, `Status.ENABLED` or `Status.DISABLED`
- `log_level`

`levels_to_string` describes a table of levels, one per line.

## Fatal handling

A fatal entry is one from a fatal level or a broken contract. It first
runs the hook set with `bglog.core.set_fatal_pre_logging_hook`. The hook
runs once and is then reset to do nothing. The entry, as a
`FatalMessage`, then goes to the fatal exit handler.

The default handler is `push_fatal_message_to_logger`. It does the
following, in order:

1. Hands the entry to the worker.
2. Waits until the worker has written it to every sink and closed them.
3. Raises `bglog.core.FatalExit`.

`FatalExit` is a `SystemExit` with exit code 128 plus the signal number.
Use `set_fatal_exit_handler` to install a different handler; in tests it
can record the entry instead.

## What it does not do

- It installs no operating-system signal or crash handlers. Only fatal
  log calls and broken contracts lead to a fatal exit.
- The stack dump attached to a fatal entry is the Python stack at the
  call site.
- There is no command-line program. The package is a library only.

## Running the tests

```
pip install -e .[test]
pytest
```