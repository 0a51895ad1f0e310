"""Shared text and time formatting helpers for human-facing panels."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from rich.markup import escape

# Control sequences that must never reach the terminal from fetched content.
_ANSI_ESCAPE_RE = re.compile(r"""
    \x1b\[[\?0-9;:]*[A-Za-z]  | # CSI sequences (colors, cursor, DEC private modes)
    \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)  | # OSC sequences (BEL or ST terminated)
    \x1b\([A-Za-z]             | # Character set selection
    \x1b[>=]                   | # Keypad mode
    \x1b[78DEHM]               | # Single-char escape commands
    \x1b                       | # Stray escape
    [\x00-\x08\x0b-\x1f\x7f]     # Remaining C0 control chars and DEL (except \t \n)
""", re.VERBOSE)


def strip_control(text: str) -> str:
    return _ANSI_ESCAPE_RE.sub("", text)


def safe_text(value: object, limit: int | None = None) -> str:
    """Return untrusted text with control sequences removed, safe for plain ``Text``."""
    text = strip_control(str(value)).replace("\t", "    ")
    if limit is not None and len(text) > limit:
        text = text[: max(0, limit - 1)] + "…"
    return text


def safe_markup(value: object, limit: int | None = None) -> str:
    """Like ``safe_text`` but also escaped for embedding in rich markup."""
    return escape(safe_text(value, limit))


def parse_iso_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
