"""The background worker that hands log entries to every sink."""

from __future__ import annotations

import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List

from bglog import core
from bglog.filesink import FileSink
from bglog.message import FatalMessage, LogMessage
from bglog.sink import Sink, SinkCall, SinkHandle


def _failed(reason: str) -> Future:
    future: Future = Future()
    future.set_exception(RuntimeError(reason))
    return future


class LogWorker:
    """Receives entries and passes copies to each sink on a background thread."""

    def __init__(self) -> None:
        self._bg = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bglog-worker")
        self._lock = threading.Lock()
        self._closing = False
        self._closed = False
        self._sinks: List[Sink] = []

    @classmethod
    def create(cls) -> "LogWorker":
        return cls()

    def _submit(self, fn: Callable[[], Any]) -> Future:
        with self._lock:
            if not self._closed:
                try:
                    return self._bg.submit(fn)
                except RuntimeError:
                    pass
        return _failed("the log worker has been closed")

    def _bg_save(self, message: LogMessage) -> None:
        for sink in self._sinks:
            sink.send(message.copy())
        if not self._sinks:
            sys.stderr.write(
                f"bglog worker has no sinks. Message: [{message.to_string()}]\n"
            )

    def _bg_fatal(self, message: FatalMessage) -> None:
        # Only the active worker receives fatal entries, so logging can stop now.
        core.shut_down_logging()
        reason = message.reason()
        message.message += (
            f"\nExiting after fatal event  ({message.level.text}). "
            f"Fatal type:  {reason}\nLog content flushed successfully to sink\n\n"
        )
        sys.stderr.write(message.to_string())
        sys.stderr.flush()
        for sink in self._sinks:
            sink.send(message.copy())
        self._close_sinks()

    def _close_sinks(self) -> None:
        sinks, self._sinks = self._sinks, []
        for sink in sinks:
            sink.close()

    def save(self, message: LogMessage) -> None:
        """Queue ``message`` for all sinks; ignored once the worker is closed."""
        self._submit(lambda: self._bg_save(message))

    def fatal(self, message: FatalMessage) -> Future:
        """Queue a fatal entry; sinks are flushed and closed once it is written.

        Returns a future that completes when that is done.
        """
        return self._submit(lambda: self._bg_fatal(message))

    def add_sink(self, real_sink: Any, call: SinkCall) -> SinkHandle:
        """Add ``real_sink``; ``call`` (a method or its name) receives each entry."""
        sink = Sink(real_sink, call)
        try:
            self._submit(lambda: self._sinks.append(sink)).result()
        except BaseException:
            sink.close()
            raise
        return SinkHandle(sink)

    def add_default_logger(
        self, log_prefix: str, log_directory: str, default_id: str = "bglog"
    ) -> SinkHandle:
        """Add a :class:`FileSink` writing to ``log_directory``."""
        return self.add_sink(
            FileSink(log_prefix, log_directory, default_id), FileSink.file_write
        )

    def remove_all_sinks(self) -> None:
        """Deliver everything queued so far, then close and drop every sink."""
        self._submit(self._close_sinks).exception()

    def close(self) -> None:
        """Stop logging through this worker, flush and close its sinks."""
        with self._lock:
            if self._closing:
                return
            self._closing = True
        core.shut_down_logging_for_active_only(self)
        self.remove_all_sinks()
        with self._lock:
            self._closed = True
        self._bg.shutdown(wait=True)

    def __enter__(self) -> "LogWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()