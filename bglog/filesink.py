"""A sink that writes formatted log entries to a file on disk."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional, TextIO

from bglog.message import LogDetailsFunc, LogMessage, default_log_details

FILE_NAME_TIME_FORMAT = "%Y%m%d-%H%M%S"
DATE_FORMAT = "%Y/%m/%d"
TIME_FORMAT = "%H:%M:%S"
HEADER_TIME_FORMAT = "%a %b %d %H:%M:%S %Y"

DEFAULT_HEADER = (
    "\t\tLOG format: [YYYY/MM/DD hh:mm:ss uuu* LEVEL FILE->FUNCTION:LINE] message\n\n"
    "\t\t(uuu*: microseconds fractions of the seconds value)\n\n"
)

_ILLEGAL_CHARACTERS = "/,|<>:#$%{}[]'\"^!?+* "
_WHITESPACE = " \t\n\v\f\r"
_STRIPPED = "/\\.:"


def _now(fmt: str) -> str:
    return datetime.now().strftime(fmt)


def is_valid_filename(prefix_filename: str) -> bool:
    """Return True if ``prefix_filename`` is non-empty and holds no path or shell characters."""
    for ch in prefix_filename:
        if ch in _ILLEGAL_CHARACTERS:
            print(
                f"Illegal character [{ch}] in logname prefix: [{prefix_filename}]",
                file=sys.stderr,
            )
            return False
    if not prefix_filename:
        print("Empty filename prefix is not allowed", file=sys.stderr)
        return False
    return True


def prefix_sanity_fix(prefix: str) -> str:
    """Strip whitespace, slashes, dots and colons; return '' if the rest is invalid."""
    cleaned = "".join(
        ch for ch in prefix if ch not in _WHITESPACE and ch not in _STRIPPED
    )
    return cleaned if is_valid_filename(cleaned) else ""


def path_sanity_fix(path: str, file_name: str) -> str:
    """Join ``path`` and ``file_name`` with a single '/' separator."""
    path = path.replace("\\", "/").rstrip("/ ")
    if path:
        path += "/"
    return path + file_name


def header(header_format: str) -> str:
    """Return the text written at the top of a log file."""
    return f"\t\tbglog created log at: {_now(HEADER_TIME_FORMAT)}\n{header_format}"


def create_log_file_name(verified_prefix: str, logger_id: str) -> str:
    """Return '<prefix>.[<id>.]<YYYYmmdd-HHMMSS>.log'."""
    parts = [verified_prefix]
    if logger_id:
        parts.append(logger_id)
    parts.append(_now(FILE_NAME_TIME_FORMAT))
    return ".".join(parts) + ".log"


def _create_log_file(path: str) -> Optional[TextIO]:
    try:
        return open(path, "w", encoding="utf-8")
    except OSError as err:
        print(f"FILE ERROR:  could not open log file:[{path}]\n\t\t {err}", file=sys.stderr)
        return None


class FileSink:
    """Writes log entries to a file, flushing every N entries."""

    def __init__(
        self,
        log_prefix: str,
        log_directory: str,
        logger_id: str = "bglog",
        write_to_log_every_x_message: int = 100,
    ) -> None:
        if write_to_log_every_x_message < 1:
            raise ValueError("write_to_log_every_x_message must be at least 1")
        self._log_details_func: LogDetailsFunc = default_log_details
        self._header = DEFAULT_HEADER
        self._first_entry = True
        self._write_buffer: list[str] = []
        self._write_counter = 0
        self._write_every = write_to_log_every_x_message
        self._closed = False

        self._log_prefix_backup = prefix_sanity_fix(log_prefix)
        if not is_valid_filename(self._log_prefix_backup):
            raise ValueError(f"illegal log prefix [{log_prefix}]")

        file_name = create_log_file_name(self._log_prefix_backup, logger_id)
        self._log_file_with_path = path_sanity_fix(log_directory, file_name)
        out = _create_log_file(self._log_file_with_path)
        if out is None:
            print(
                "Cannot write log file to location, attempting current directory",
                file=sys.stderr,
            )
            self._log_file_with_path = "./" + file_name
            out = _create_log_file(self._log_file_with_path)
        if out is None:
            raise OSError(f"cannot open log file [{self._log_file_with_path}]")
        self._out: TextIO = out

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def _add_log_file_header(self) -> None:
        self._write(header(self._header))

    def file_write(self, message: LogMessage) -> None:
        """Receive one log entry; entries are written out in batches."""
        if self._first_entry:
            self._add_log_file_header()
            self._first_entry = False
        self._write_buffer.append(message.to_string(self._log_details_func))
        self._write_counter += 1
        if self._write_counter % self._write_every == 0:
            self._write("".join(self._write_buffer))
            self._write_buffer.clear()

    def change_log_file(self, directory: str, logger_id: str) -> str:
        """Move logging to a new file in ``directory``; return its path, or '' on failure."""
        now_formatted = _now(f"{DATE_FORMAT} {TIME_FORMAT}")
        file_name = create_log_file_name(self._log_prefix_backup, logger_id)
        prospect_log = directory + file_name
        new_out = _create_log_file(prospect_log)
        if new_out is None:
            self._write(
                f"\n{now_formatted} Unable to change log file. Illegal filename or busy? "
                f"Unsuccessful log name was: {prospect_log}"
            )
            return ""

        self._add_log_file_header()
        self._write(
            f"{now_formatted}\n\tChanging log file from : {self._log_file_with_path}"
            f"\n\tto new location: {prospect_log}\n"
        )
        old_log = self._log_file_with_path
        self._out.close()
        self._log_file_with_path = prospect_log
        self._out = new_out
        self._write(
            f"{now_formatted}\n\tNew log file. The previous log file was at: {old_log}\n"
        )
        return self._log_file_with_path

    def file_name(self) -> str:
        return self._log_file_with_path

    def override_log_details(self, func: LogDetailsFunc) -> None:
        self._log_details_func = func

    def override_log_header(self, change: str) -> None:
        self._header = change

    def close(self) -> None:
        """Write out anything buffered, append a shutdown line and close the file."""
        if self._closed:
            return
        self._closed = True
        exit_msg = f"bglog FileSink shutdown at: {_now(TIME_FORMAT)}\n"
        self._write("".join(self._write_buffer) + exit_msg)
        self._write_buffer.clear()
        self._out.close()
        print(f"{exit_msg}Log file at: [{self._log_file_with_path}]", file=sys.stderr)

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()