"""Shared model contracts for widget data flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class GriddashError(Exception):
    """Base class for dashboard errors."""


class ConfigError(GriddashError):
    """The configuration document is missing, unparsable or invalid.

    ``reason`` is one of ``"missing"``, ``"syntax"``, ``"invalid"`` or
    ``"layout"`` so the CLI can tell the user which of them happened.
    """

    def __init__(self, message: str, reason: str = "invalid") -> None:
        super().__init__(message)
        self.reason = reason


class LayoutError(ConfigError):
    """Grid geometry that cannot be resolved."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="layout")


class FetchError(GriddashError):
    """A data provider failed to produce data."""


@dataclass(frozen=True)
class Record:
    title: str
    timestamp: str | None = None
    group: str = ""
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "timestamp": self.timestamp,
            "group": self.group,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class Status:
    """Filtered snapshot of one widget's data at one point in time."""

    subject: str
    records: tuple[Record, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "fetched_at": self.fetched_at.isoformat(),
            "records": [record.to_dict() for record in self.records],
        }
