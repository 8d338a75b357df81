"""
Log sink — where the orchestrator reports run progress.

The sink is fire-and-forget: a sink that raises never affects the run.
``LoggingSink`` routes messages into stdlib logging; embedders can pass
any object with a ``log(level, message)`` method (a GUI, a recorder).
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

LEVELS = ("debug", "info", "warning", "error")


@runtime_checkable
class LogSink(Protocol):
    def log(self, level: str, message: str) -> None: ...


class LoggingSink:
    """Sink backed by a stdlib logger."""

    def __init__(self, name: str = "hostforge.run"):
        self._logger = logging.getLogger(name)

    def log(self, level: str, message: str) -> None:
        numeric = getattr(logging, level.upper(), logging.INFO)
        self._logger.log(numeric if isinstance(numeric, int) else logging.INFO, "%s", message)


class RecordingSink:
    """Keeps every message in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def log(self, level: str, message: str) -> None:
        self.records.append((level, message))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m in self.records if level is None or lvl == level]


def emit(sink: LogSink | None, level: str, message: str) -> None:
    """Send to the sink; a failing sink is noted at DEBUG and ignored."""
    if sink is None:
        return
    try:
        sink.log(level, message)
    except Exception as e:
        logger.debug("Log sink %s failed: %s", type(sink).__name__, e)
