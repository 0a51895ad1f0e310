"""Collector helpers shared by every data provider."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Iterable

from griddash.formatting import parse_iso_timestamp, strip_control
from griddash.models import Record

TIMESTAMP_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+\-]\d{2}:\d{2})?)?"
)
MAX_LINES = 200


def filter_since(records: Iterable[Record], since: datetime | None) -> tuple[Record, ...]:
    """Keep records newer than ``since``.

    A record whose timestamp is missing or unparsable is kept: hiding data
    is worse than showing a possibly stale item.
    """
    if since is None:
        return tuple(records)

    kept: list[Record] = []
    for record in records:
        stamp = parse_iso_timestamp(record.timestamp)
        if stamp is None or stamp > since:
            kept.append(record)
    return tuple(kept)


def lines_to_records(lines: Iterable[str], group: str = "", limit: int = MAX_LINES) -> list[Record]:
    records: list[Record] = []
    for raw in lines:
        line = strip_control(raw).rstrip()
        if not line.strip():
            continue
        match = TIMESTAMP_RE.search(line)
        records.append(
            Record(title=line, timestamp=match.group(0) if match else None, group=group)
        )
    return records[-limit:]


def expand_path(value: str) -> Path:
    return Path(value).expanduser()
