"""Log entries and their textual form."""

from __future__ import annotations

import copy as _copy
import signal
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from bglog.levels import (
    CONTRACT,
    FATAL,
    FATAL_EXCEPTION,
    FATAL_SIGNAL,
    Level,
    was_fatal,
)

DEFAULT_TIME_FORMAT = "%Y/%m/%d %H:%M:%S %f"

LogDetailsFunc = Callable[["LogMessage"], str]


def split_file_name(path: str) -> str:
    """Return the part of ``path`` after the last '(', '/' or '\\'."""
    cut = max(path.rfind(ch) for ch in "(/\\")
    return path[cut + 1:]


def default_log_details(msg: "LogMessage") -> str:
    """Prefix with timestamp, level, file, function and line."""
    return (
        f"{msg.timestamp()}\t{msg.level.text} "
        f"[{msg.file}->{msg.function}:{msg.line}]\t"
    )


def full_log_details(msg: "LogMessage") -> str:
    """Like :func:`default_log_details` but also names the calling thread."""
    return (
        f"{msg.timestamp()}\t{msg.level.text} "
        f"[{msg.thread_id()} {msg.file}->{msg.function}:{msg.line}]\t"
    )


class LogMessage:
    """A single log entry captured at a call site."""

    def __init__(self, file: str, line: int, function: str, level: Level) -> None:
        self._details_func: LogDetailsFunc = default_log_details
        self.created = time.time()
        self.call_thread_id = threading.get_ident()
        self.file = split_file_name(file)
        self.file_path = file
        self.line = line
        self.function = function
        self.level = level
        self.expression = ""
        self.message = ""

    @classmethod
    def from_fatal_signal(cls, crash_message: str) -> "LogMessage":
        """Build the entry used when a fatal OS signal was caught."""
        msg = cls("", 0, "", FATAL_SIGNAL)
        msg.message += crash_message
        return msg

    def timestamp(self, time_format: str = DEFAULT_TIME_FORMAT) -> str:
        return datetime.fromtimestamp(self.created).strftime(time_format)

    def thread_id(self) -> str:
        return str(self.call_thread_id)

    def override_log_details(self, func: LogDetailsFunc) -> None:
        self._details_func = func

    def to_string(self, details_func: Optional[LogDetailsFunc] = None) -> str:
        """Format the entry according to its level."""
        self.override_log_details(details_func or default_log_details)
        value = self.level.value
        if not was_fatal(self.level):
            return self._details_func(self) + self.message + "\n"
        if value == FATAL_SIGNAL.value:
            return (
                f"{self.timestamp()}\n\n***** FATAL SIGNAL RECEIVED ******* \n"
                f"{self.message}\n"
            )
        if value == FATAL_EXCEPTION.value:
            return (
                f"{self.timestamp()}\n\n***** FATAL EXCEPTION RECEIVED ******* \n"
                f"{self.message}\n"
            )
        if value == FATAL.value:
            return (
                self._details_func(self)
                + "\n\t*******\t EXIT trigger caused by LOG(FATAL) entry: \n\t"
                + f'"{self.message}"'
            )
        if value == CONTRACT.value:
            return (
                self._details_func(self)
                + "\n\t*******\t EXIT trigger caused by broken Contract: "
                + f"CHECK({self.expression})\n\t"
                + f'"{self.message}"'
            )
        return (
            self._details_func(self)
            + "\t*******UNKNOWN or Custom made Log Message Type\n\t"
            + self.message
            + "\n"
        )

    def copy(self) -> "LogMessage":
        return _copy.copy(self)

    def _take_fields(self, other: "LogMessage") -> None:
        self._details_func = other._details_func
        self.created = other.created
        self.call_thread_id = other.call_thread_id
        self.file = other.file
        self.file_path = other.file_path
        self.line = other.line
        self.function = other.function
        self.level = other.level
        self.expression = other.expression
        self.message = other.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(level={self.level.text!r}, "
            f"file={self.file!r}, line={self.line}, message={self.message!r})"
        )


def _signal_name(signal_id: int) -> Optional[str]:
    try:
        return signal.Signals(signal_id).name
    except ValueError:
        return None


class FatalMessage(LogMessage):
    """A log entry that ends the program, with the signal it exits with."""

    def __init__(self, details: LogMessage, signal_id: int) -> None:
        self._take_fields(details)
        self.signal_id = signal_id

    def reason(self) -> str:
        """Name the signal behind the fatal exit."""
        name = _signal_name(self.signal_id)
        if name is not None:
            return name
        return f"UNKNOWN SIGNAL({self.signal_id}) for {self.level.text}"

    def copy_to_log_message(self) -> LogMessage:
        plain = LogMessage.__new__(LogMessage)
        plain._take_fields(self)
        return plain