"""Utility helpers for the Bijoyfin client."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup


TICKS_PER_SECOND = 10_000_000

DATE_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
DATE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

_LINE_BREAK_SENTINEL = "br2n"


def format_bytes(size: int) -> str:
    """Return a human-readable size using decimal units."""

    if size >= 1_000_000_000:
        return f"{size / 1_000_000_000:.2f} GB"
    if size >= 1_000_000:
        return f"{size / 1_000_000:.2f} MB"
    if size >= 1_000:
        return f"{size / 1_000:.2f} KB"
    if size > 1:
        return f"{size} bytes"
    if size == 1:
        return "1 byte"
    return ""


def format_seconds(total_seconds: int) -> str:
    """Return a compact ``1h 2m 5s`` style duration.

    Hours and minutes are left out when zero; seconds are always shown.
    """

    minutes, seconds = divmod(total_seconds, 60)
    hours, minutes = divmod(minutes, 60)
    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts).strip()


def ticks_to_seconds(ticks: int) -> int:
    return ticks // TICKS_PER_SECOND


def parse_date_time(value: str) -> int:
    """Parse a server timestamp into epoch milliseconds.

    Trailing fractional seconds are ignored. Anything unparsable yields ``0``.
    """

    match = DATE_TIME_RE.match(value.removesuffix("Z"))
    if not match:
        return 0
    try:
        parsed = datetime.strptime(match.group(0), DATE_TIME_FORMAT)
    except ValueError:
        return 0
    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def date_part(value: str | None) -> str:
    """Return the text before the first ``T`` of an ISO timestamp."""

    if not value:
        return ""
    return value.split("T", 1)[0]


def html_to_text(fragment: str) -> str:
    """Flatten an HTML fragment to plain text while keeping ``<br>`` breaks."""

    marked = fragment.replace("<br>", _LINE_BREAK_SENTINEL)
    text = BeautifulSoup(marked, "html.parser").get_text()
    text = " ".join(text.split())
    return text.replace(_LINE_BREAK_SENTINEL, "\n")
