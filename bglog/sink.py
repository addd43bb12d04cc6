"""Sinks that receive log entries on their own background thread."""

from __future__ import annotations

import functools
import inspect
import queue
import threading
import traceback
import weakref
from concurrent.futures import Future
from typing import Any, Callable, Optional, Union

from bglog.message import LogMessage

SinkCall = Union[str, Callable[..., Any]]


class _Active:
    """Runs queued callables one at a time on a dedicated thread."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Optional[Callable[[], None]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            if job is None:
                return
            try:
                job()
            except Exception:
                traceback.print_exc()

    def send(self, job: Callable[[], None]) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._queue.put(job)
            return True

    def submit(self, fn: Callable[[], Any]) -> Future:
        future: Future = Future()

        def task() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as err:
                future.set_exception(err)

        if not self.send(task):
            future.set_exception(RuntimeError("the sink's background worker has stopped"))
        return future

    def stop(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)
        if threading.current_thread() is not self._thread:
            self._thread.join()


def _bind(real_sink: Any, method: SinkCall) -> Callable[..., Any]:
    if isinstance(method, str):
        return getattr(real_sink, method)
    if inspect.ismethod(method):
        return method
    return functools.partial(method, real_sink)


class Sink:
    """Wraps a real sink object; entries are delivered to it in the background."""

    def __init__(self, real_sink: Any, call: SinkCall, accepts_text: bool = False) -> None:
        self.real_sink = real_sink
        self._bg = _Active()
        self._closed = False
        receiver = _bind(real_sink, call)
        if accepts_text:
            self._default_log_call: Callable[[LogMessage], Any] = (
                lambda message: receiver(message.to_string())
            )
        else:
            self._default_log_call = receiver

    def send(self, message: LogMessage) -> None:
        """Queue ``message`` for the real sink; ignored once closed."""
        self._bg.send(lambda: self._default_log_call(message))

    def call(self, method: SinkCall, *args: Any, **kwargs: Any) -> Future:
        """Run a method of the real sink in the background; return its future."""
        bound = _bind(self.real_sink, method)
        return self._bg.submit(lambda: bound(*args, **kwargs))

    def close(self) -> None:
        """Deliver everything queued, stop the worker and close the real sink."""
        if self._closed:
            return
        self._closed = True
        self._bg.stop()
        closer = getattr(self.real_sink, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> "Sink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SinkHandle:
    """A weak handle through which callers reach a sink's real object."""

    def __init__(self, sink: Sink) -> None:
        self._sink = weakref.ref(sink)

    def call(self, method: SinkCall, *args: Any, **kwargs: Any) -> Future:
        """Call ``method`` on the real sink; the future fails if the sink is gone."""
        sink = self._sink()
        if sink is None:
            future: Future = Future()
            future.set_exception(RuntimeError("the sink no longer exists"))
            return future
        return sink.call(method, *args, **kwargs)