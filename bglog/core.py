"""Process-wide logging state: the active worker and routing of entries to it."""

from __future__ import annotations

import inspect
import signal
import sys
import threading
from typing import TYPE_CHECKING, Callable, Optional

from bglog.levels import WARNING, Level, log_level, was_fatal
from bglog.message import FatalMessage, LogMessage

if TYPE_CHECKING:
    from bglog.logworker import LogWorker

FatalHandler = Callable[[FatalMessage], None]

_NOT_INITIALIZED_PREFIX = "LOGGER NOT INITIALIZED:\n\t\t"
_RECURSIVE_CRASH_WARNING = (
    "\n\n\nWARNING\n"
    "A recursive crash detected. It is likely the hook set with "
    "'set_fatal_pre_logging_hook(...)' is responsible\n\n"
)


class FatalExit(SystemExit):
    """Raised once a fatal entry has been handled; ends the program unless caught.

    The exit code follows the shell convention of 128 plus the signal number.
    """

    def __init__(self, message: FatalMessage) -> None:
        super().__init__(128 + int(message.signal_id))
        self.fatal_message = message
        self.signal_id = int(message.signal_id)
        self.reason = message.reason()

    def __str__(self) -> str:
        return f"fatal exit: {self.reason}"


def _pre_fatal_hook_that_does_nothing() -> None:
    return None


class _State:
    def __init__(self) -> None:
        self.init_lock = threading.Lock()
        self.lock = threading.Lock()
        self.clear()

    def clear(self) -> None:
        self.logger: Optional["LogWorker"] = None
        self.first_uninitialized: Optional[LogMessage] = None
        self.first_uninitialized_seen = False
        self.first_uninitialized_handed_over = False
        self.fatal_hook: Callable[[], None] = _pre_fatal_hook_that_does_nothing
        self.fatal_hook_counter = 0
        self.first_stack_trace: Optional[str] = None
        self.fatal_handler: FatalHandler = push_fatal_message_to_logger


def _reset_state() -> None:
    """Forget every process-wide setting, as at program start."""
    with _state.init_lock, _state.lock:
        _state.clear()


def initialize_logging(worker: Optional["LogWorker"]) -> None:
    """Make ``worker`` the destination of all log entries.

    Raises RuntimeError if logging is already initialized or ``worker`` is None.
    """
    with _state.init_lock:
        initialized = _state.logger is not None
        if initialized or worker is None:
            message = (
                "Fatal exit due to illegal initialization of LogWorker\n"
                f"\t(due to multiple initializations? : {str(initialized).lower()}, "
                f"due to worker is None? : {str(worker is None).lower()})"
            )
            print(message, file=sys.stderr)
            raise RuntimeError(message)

        pending: Optional[LogMessage] = None
        with _state.lock:
            if not _state.first_uninitialized_handed_over:
                _state.first_uninitialized_handed_over = True
                pending, _state.first_uninitialized = _state.first_uninitialized, None
        if pending is not None:
            worker.save(pending)

        _state.logger = worker

    set_fatal_pre_logging_hook(_pre_fatal_hook_that_does_nothing)
    with _state.lock:
        _state.fatal_hook_counter = 0


def set_fatal_pre_logging_hook(hook: Callable[[], None]) -> None:
    """Run ``hook`` just before the next fatal entry is handed over.

    The hook is reset to do nothing by :func:`initialize_logging` and after each use.
    """
    with _state.lock:
        _state.fatal_hook = hook


def set_fatal_exit_handler(handler: FatalHandler) -> None:
    """Replace what is done with fatal entries (by default :func:`push_fatal_message_to_logger`)."""
    with _state.lock:
        _state.fatal_handler = handler


def is_logging_initialized() -> bool:
    return _state.logger is not None


def shut_down_logging() -> None:
    """Stop sending entries to the worker; the worker itself is left alone."""
    with _state.init_lock:
        _state.logger = None


def shut_down_logging_for_active_only(active: Optional["LogWorker"]) -> bool:
    """Shut down logging unless ``active`` is a worker other than the active one.

    Returns True if logging was shut down.
    """
    current = _state.logger
    if current is not None and active is not None and active is not current:
        if log_level(WARNING):
            frame = inspect.currentframe()
            save_message(
                "\n\t\tAttempted to shut down logging, but the ID of the Logger is not the one that is active."
                "\n\t\tHaving multiple instances of the LogWorker is likely a BUG"
                "\n\t\tEither way, this call to shut_down_logging was ignored"
                "\n\t\tTry shut_down_logging() instead",
                __file__,
                frame.f_lineno if frame is not None else 0,
                "shut_down_logging_for_active_only",
                WARNING,
            )
        return False
    shut_down_logging()
    return True


def save_message(
    entry: str,
    file: str,
    line: int,
    function: str,
    level: Level,
    expression: str = "",
    fatal_signal: int = int(signal.SIGABRT),
    stack_trace: str = "",
) -> None:
    """Build an entry and pass it on; fatal entries go to the fatal exit handler."""
    message = LogMessage(file, line, function, level)
    message.message += entry
    message.expression = expression

    if not was_fatal(level):
        push_message_to_logger(message)
        return

    with _state.lock:
        hook = _state.fatal_hook
        # A hook that crashes in turn must not be run again.
        _state.fatal_hook = _pre_fatal_hook_that_does_nothing
        _state.fatal_hook_counter += 1
        if _state.first_stack_trace is None:
            _state.first_stack_trace = stack_trace
        first_stack_trace = _state.first_stack_trace

    hook()
    message.message += stack_trace

    with _state.lock:
        recursive = _state.fatal_hook_counter > 1
    if recursive:
        message.message += (
            _RECURSIVE_CRASH_WARNING
            + "---First crash stacktrace: "
            + first_stack_trace
            + "\n---End of first stacktrace\n"
        )
    fatal_call(FatalMessage(message, fatal_signal))


def push_message_to_logger(message: LogMessage) -> None:
    """Hand ``message`` to the active worker.

    Before initialization only the first entry is kept (and passed on at
    initialization); later ones are dropped.
    """
    worker = _state.logger
    if worker is not None:
        worker.save(message)
        return

    with _state.lock:
        if _state.first_uninitialized_seen:
            return
        _state.first_uninitialized_seen = True
        message.message = _NOT_INITIALIZED_PREFIX + message.message
        _state.first_uninitialized = message
    print(message.message, file=sys.stderr)


def push_fatal_message_to_logger(message: FatalMessage) -> None:
    """Flush ``message`` through the active worker, then raise :class:`FatalExit`."""
    worker = _state.logger
    if worker is None:
        print(
            "FATAL CALL but logger is NOT initialized\n"
            f"CAUSE: {message.reason()}\nMessage: \n{message.to_string()}",
            file=sys.stderr,
        )
        raise FatalExit(message)
    done = worker.fatal(message)
    done.exception()
    raise FatalExit(message)


def fatal_call(message: FatalMessage) -> None:
    """Pass a fatal entry to the current fatal exit handler."""
    with _state.lock:
        handler = _state.fatal_handler
    handler(message)


_state = _State()