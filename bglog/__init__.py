"""Asynchronous logging with background sinks, a file sink, run-time log levels and contract checks."""

__version__ = "0.1.0"

__all__ = ["capture", "core", "filesink", "levels", "logworker", "message", "sink"]