"""Capturing log entries and contract checks at the call site."""

from __future__ import annotations

import signal
import sys
import traceback
from typing import Any, List, Optional

from bglog.core import save_message
from bglog.levels import CONTRACT, Level, log_level, was_fatal

DEFAULT_MAX_MESSAGE_SIZE = 2048

_TRUNCATED_WARNING = "[...truncated...]"
_STACKDUMP_HEADER = "\n*******\tSTACKDUMP *******\n"
_PARSE_ERROR = "\n\tERROR LOG MSG NOTIFICATION: Failure to successfully parse the message"

_max_message_size = DEFAULT_MAX_MESSAGE_SIZE


def set_max_message_size(max_size: int) -> None:
    """Set the size limit for printf-style messages (2048 by default).

    Longer messages are cut and end with '[...truncated...]'.
    """
    global _max_message_size
    if max_size < 1:
        raise ValueError("max_size must be at least 1")
    _max_message_size = int(max_size)


def _stackdump(dump: Optional[str]) -> str:
    if dump is not None:
        return dump
    return "".join(traceback.format_stack()[:-2])


class LogCapture:
    """Collects the text of one entry; :meth:`commit` passes it on."""

    def __init__(
        self,
        file: str,
        line: int,
        function: str,
        level: Level,
        expression: str = "",
        fatal_signal: int = int(signal.SIGABRT),
        dump: Optional[str] = None,
    ) -> None:
        self.file = file
        self.line = line
        self.function = function
        self.level = level
        self.expression = expression
        self.fatal_signal = int(fatal_signal)
        self._parts: List[str] = []
        self._committed = False
        self._stack_trace = ""
        if was_fatal(level):
            self._stack_trace = _STACKDUMP_HEADER + _stackdump(dump)

    @property
    def text(self) -> str:
        """The text captured so far."""
        return "".join(self._parts)

    @property
    def stack_trace(self) -> str:
        return self._stack_trace

    def write(self, *args: Any) -> "LogCapture":
        """Append each argument's text, with no separator."""
        self._parts.extend(str(arg) for arg in args)
        return self

    def capturef(self, printf_like_message: str, *args: Any) -> "LogCapture":
        """Append a printf-style formatted message, cut to the size limit."""
        try:
            formatted = printf_like_message % tuple(args)
        except (TypeError, ValueError, KeyError):
            self._parts.append(_PARSE_ERROR)
            self._parts.append(f'"{printf_like_message}"\n')
            return self

        limit = _max_message_size
        shown = formatted[: limit - 1] if len(formatted) >= limit else formatted
        if len(formatted) > limit:
            shown += _TRUNCATED_WARNING
        self._parts.append(shown)
        return self

    def commit(self) -> None:
        """Pass the captured entry on; later calls do nothing."""
        if self._committed:
            return
        self._committed = True
        save_message(
            self.text,
            self.file,
            self.line,
            self.function,
            self.level,
            self.expression,
            self.fatal_signal,
            self._stack_trace,
        )

    def __enter__(self) -> "LogCapture":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()


def _capture_at_caller(level: Level, expression: str = "") -> LogCapture:
    # Frame 0 is this helper, 1 the public function, 2 its caller.
    frame = sys._getframe(2)
    return LogCapture(
        frame.f_code.co_filename,
        frame.f_lineno,
        frame.f_code.co_name,
        level,
        expression,
    )


def log(level: Level, *args: Any) -> None:
    """Log the concatenated text of ``args`` if ``level`` is enabled."""
    if not log_level(level):
        return
    _capture_at_caller(level).write(*args).commit()


def log_if(level: Level, condition: Any, *args: Any) -> None:
    """Like :func:`log`, but only when ``condition`` holds."""
    if not log_level(level) or not condition:
        return
    _capture_at_caller(level).write(*args).commit()


def logf(level: Level, printf_like_message: str, *args: Any) -> None:
    """Log a printf-style message if ``level`` is enabled."""
    if not log_level(level):
        return
    _capture_at_caller(level).capturef(printf_like_message, *args).commit()


def logf_if(level: Level, condition: Any, printf_like_message: str, *args: Any) -> None:
    """Like :func:`logf`, but only when ``condition`` holds."""
    if not log_level(level) or not condition:
        return
    _capture_at_caller(level).capturef(printf_like_message, *args).commit()


def check(condition: Any, *args: Any, expression: str = "") -> None:
    """Report a broken contract, which is fatal, when ``condition`` is false."""
    if condition:
        return
    _capture_at_caller(CONTRACT, expression).write(*args).commit()


def checkf(condition: Any, printf_like_message: str, *args: Any, expression: str = "") -> None:
    """Like :func:`check`, with a printf-style message."""
    if condition:
        return
    _capture_at_caller(CONTRACT, expression).capturef(printf_like_message, *args).commit()