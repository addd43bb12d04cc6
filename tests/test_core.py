import signal

import pytest

from bglog import core
from bglog.levels import CONTRACT, FATAL, INFO
from bglog.logworker import LogWorker
from bglog.message import FatalMessage, LogMessage


class Collector:
    def __init__(self):
        self.entries = []

    def receive(self, message):
        self.entries.append(message)


@pytest.fixture(autouse=True)
def clean_state():
    core._reset_state()
    yield
    core.shut_down_logging()
    core._reset_state()


@pytest.fixture
def worker_and_collector():
    worker = LogWorker()
    collector = Collector()
    worker.add_sink(collector, Collector.receive)
    yield worker, collector
    worker.close()


@pytest.fixture
def mock_fatal():
    recorded = []
    core.set_fatal_exit_handler(recorded.append)
    return recorded


def test_not_initialized_by_default():
    assert core.is_logging_initialized() is False


def test_initialize_and_shut_down(worker_and_collector):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    assert core.is_logging_initialized() is True
    core.shut_down_logging()
    assert core.is_logging_initialized() is False
    core.shut_down_logging()
    assert core.is_logging_initialized() is False


def test_initialize_twice_raises(worker_and_collector):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    with pytest.raises(RuntimeError):
        core.initialize_logging(worker)


def test_initialize_with_none_raises():
    with pytest.raises(RuntimeError):
        core.initialize_logging(None)


def test_first_uninitialized_message_is_kept(worker_and_collector):
    worker, collector = worker_and_collector
    core.save_message("first", "a.py", 1, "f", INFO)
    core.save_message("ignored", "a.py", 2, "f", INFO)
    core.initialize_logging(worker)
    core.save_message("good", "a.py", 3, "f", INFO)
    worker.close()
    texts = [entry.message for entry in collector.entries]
    assert texts == ["LOGGER NOT INITIALIZED:\n\t\tfirst", "good"]


def test_non_fatal_entry_reaches_worker(worker_and_collector):
    worker, collector = worker_and_collector
    core.initialize_logging(worker)
    core.save_message("hello", "src/app.py", 42, "run", INFO)
    worker.close()
    assert len(collector.entries) == 1
    entry = collector.entries[0]
    assert entry.message == "hello"
    assert entry.level == INFO
    assert entry.file == "app.py"
    assert entry.line == 42


def test_entries_after_shutdown_are_dropped(worker_and_collector):
    worker, collector = worker_and_collector
    core.initialize_logging(worker)
    core.save_message("kept", "a.py", 1, "f", INFO)
    core.shut_down_logging()
    core.save_message("dropped", "a.py", 2, "f", INFO)
    worker.close()
    assert [e.message for e in collector.entries] == ["kept"]


def test_shut_down_for_active_worker(worker_and_collector):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    assert core.shut_down_logging_for_active_only(worker) is True
    assert core.is_logging_initialized() is False


def test_shut_down_for_other_worker_is_ignored(worker_and_collector):
    worker, collector = worker_and_collector
    core.initialize_logging(worker)
    other = LogWorker()
    assert core.shut_down_logging_for_active_only(other) is False
    assert core.is_logging_initialized() is True
    other.close()
    worker.close()
    assert any("Attempted to shut down logging" in e.message for e in collector.entries)


def test_fatal_calls_hook_and_handler(worker_and_collector, mock_fatal):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    calls = []
    core.set_fatal_pre_logging_hook(lambda: calls.append(1))
    core.save_message("boom", "a.py", 5, "f", FATAL, stack_trace="TRACE")
    assert calls == [1]
    assert len(mock_fatal) == 1
    fatal = mock_fatal[0]
    assert "boom" in fatal.message
    assert "TRACE" in fatal.message
    assert fatal.reason() == "SIGABRT"
    assert "EXIT trigger caused by LOG(FATAL) entry: " in fatal.to_string()


def test_hook_used_once_and_recursion_reported(worker_and_collector, mock_fatal):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    calls = []
    core.set_fatal_pre_logging_hook(lambda: calls.append(1))
    core.save_message("one", "a.py", 1, "f", FATAL, stack_trace="FIRST")
    core.save_message("two", "a.py", 2, "f", FATAL, stack_trace="SECOND")
    assert calls == [1]
    assert "A recursive crash detected" not in mock_fatal[0].message
    assert "A recursive crash detected" in mock_fatal[1].message
    assert "---First crash stacktrace: FIRST" in mock_fatal[1].message


def test_initialize_resets_hook(worker_and_collector, mock_fatal):
    worker, _ = worker_and_collector
    calls = []
    core.set_fatal_pre_logging_hook(lambda: calls.append(1))
    core.initialize_logging(worker)
    core.save_message("fatal", "a.py", 1, "f", FATAL)
    assert calls == []
    assert len(mock_fatal) == 1


def test_contract_entry_names_expression(worker_and_collector, mock_fatal):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)
    core.save_message("", "a.py", 1, "f", CONTRACT, expression="1 == 2")
    assert "CHECK(1 == 2)" in mock_fatal[0].to_string()
    assert "EXIT trigger caused by " in mock_fatal[0].to_string()


def test_handler_exception_propagates(worker_and_collector):
    worker, _ = worker_and_collector
    core.initialize_logging(worker)

    def handler(message):
        raise RuntimeError("fatal test handler")

    core.set_fatal_exit_handler(handler)
    with pytest.raises(RuntimeError, match="fatal test handler"):
        core.save_message("bad", "a.py", 1, "f", CONTRACT, expression="i < size")


def test_push_fatal_without_logger_raises():
    message = FatalMessage(LogMessage("a.py", 1, "f", FATAL), int(signal.SIGABRT))
    with pytest.raises(core.FatalExit) as info:
        core.push_fatal_message_to_logger(message)
    assert info.value.signal_id == int(signal.SIGABRT)
    assert info.value.fatal_message is message
    assert isinstance(info.value, SystemExit)


def test_default_fatal_handling_flushes_and_exits(worker_and_collector):
    worker, collector = worker_and_collector
    core.initialize_logging(worker)
    with pytest.raises(core.FatalExit):
        core.save_message("This message is fatal", "a.py", 1, "f", FATAL)
    assert core.is_logging_initialized() is False
    assert len(collector.entries) == 1
    text = collector.entries[0].message
    assert "This message is fatal" in text
    assert "Exiting after fatal event" in text