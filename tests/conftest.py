"""Shared fixtures: a logger that records structured calls instead of printing them."""

from typing import Any

import pytest
import structlog


class RecordingLogger:
    """Satisfies the engine's logger protocol; keeps (level, event, fields) tuples."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.records.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        self._record("exception", event, **kw)

    def events(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]

    def find(self, event: str) -> list[dict[str, Any]]:
        return [fields for _, ev, fields in self.records if ev == event]


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture(autouse=True)
def reset_structlog():
    """CLI commands configure structlog globally; restore defaults after each test."""
    yield
    structlog.reset_defaults()
