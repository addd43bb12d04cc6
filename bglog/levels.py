"""Log levels and the registry that switches them on and off at run time."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple


@dataclass(frozen=True)
class Level:
    """A log level: a numeric severity and the text shown in log entries."""

    value: int
    text: str

    def __str__(self) -> str:
        return self.text


DEBUG = Level(100, "DEBUG")
INFO = Level(300, "INFO")
WARNING = Level(500, "WARNING")
FATAL = Level(1000, "FATAL")

# Levels used internally for broken contracts and fatal OS events.
CONTRACT = Level(2000, "CONTRACT")
FATAL_SIGNAL = Level(2001, "FATAL_SIGNAL")
FATAL_EXCEPTION = Level(2002, "FATAL_EXCEPTION")


class Status(Enum):
    """Whether a level is known to the registry and, if so, enabled."""

    ABSENT = "absent"
    ENABLED = "enabled"
    DISABLED = "disabled"


def was_fatal(level: Level) -> bool:
    """Return True when ``level`` is at or above FATAL."""
    return level.value >= FATAL.value


def _defaults() -> Dict[int, Tuple[Level, bool]]:
    return {lvl.value: (lvl, True) for lvl in (DEBUG, INFO, WARNING, FATAL)}


def levels_to_string(levels: Mapping[int, Tuple[Level, bool]]) -> str:
    """Describe each level of ``levels`` on a line, ordered by value."""
    return "".join(
        f"name: {level.text} level: {value} status: {int(enabled)}\n"
        for value, (level, enabled) in sorted(levels.items())
    )


class LevelRegistry:
    """Thread-safe table of levels keyed by value, each enabled or disabled."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._levels: Dict[int, Tuple[Level, bool]] = _defaults()

    def add_log_level(self, level: Level, enabled: bool = True) -> None:
        """Add ``level`` (or replace the level with the same value)."""
        with self._lock:
            self._levels[level.value] = (level, bool(enabled))

    def reset(self) -> None:
        """Restore the default levels, all enabled."""
        with self._lock:
            self._levels = _defaults()

    def set_highest(self, enabled_from: Level) -> None:
        """Enable levels from ``enabled_from`` upwards, disable those below.

        Nothing changes when ``enabled_from`` is not registered.
        """
        with self._lock:
            if enabled_from.value not in self._levels:
                return
            self._levels = {
                value: (level, value >= enabled_from.value)
                for value, (level, _) in self._levels.items()
            }

    def set(self, level: Level, enabled: bool) -> None:
        """Set the status of a registered level; unknown levels are ignored."""
        with self._lock:
            if level.value in self._levels:
                self._levels[level.value] = (level, bool(enabled))

    def enable(self, level: Level) -> None:
        self.set(level, True)

    def disable(self, level: Level) -> None:
        self.set(level, False)

    def enable_all(self) -> None:
        with self._lock:
            self._levels = {v: (lvl, True) for v, (lvl, _) in self._levels.items()}

    def disable_all(self) -> None:
        with self._lock:
            self._levels = {v: (lvl, False) for v, (lvl, _) in self._levels.items()}

    def get_all(self) -> Dict[int, Tuple[Level, bool]]:
        """Return a snapshot of the registered levels."""
        with self._lock:
            return dict(self._levels)

    def get_status(self, level: Level) -> Status:
        with self._lock:
            entry = self._levels.get(level.value)
        if entry is None:
            return Status.ABSENT
        return Status.ENABLED if entry[1] else Status.DISABLED

    def is_enabled(self, level: Level) -> bool:
        """Return True if ``level`` is registered and enabled."""
        with self._lock:
            entry = self._levels.get(level.value)
        return entry is not None and entry[1]

    def to_string(self) -> str:
        return levels_to_string(self.get_all())


_registry = LevelRegistry()


def log_level(level: Level) -> bool:
    """Return True if messages at ``level`` should be logged."""
    return _registry.is_enabled(level)


def add_log_level(level: Level, enabled: bool = True) -> None:
    _registry.add_log_level(level, enabled)


def reset_levels() -> None:
    _registry.reset()


def set_highest(enabled_from: Level) -> None:
    _registry.set_highest(enabled_from)


def enable(level: Level) -> None:
    _registry.enable(level)


def disable(level: Level) -> None:
    _registry.disable(level)


def enable_all() -> None:
    _registry.enable_all()


def disable_all() -> None:
    _registry.disable_all()


def get_status(level: Level) -> Status:
    return _registry.get_status(level)