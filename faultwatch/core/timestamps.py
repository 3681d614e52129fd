"""Timestamp format shared by log headers and the alert window store."""

from __future__ import annotations

from datetime import datetime

TIMESTAMP_FORMAT = "%d-%b-%Y %H:%M:%S %z"


def format_timestamp(moment: datetime) -> str:
    """Render an aware datetime, e.g. ``17-Oct-2026 14:03:11 +0000``."""
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime | None:
    """Parse a timestamp written by format_timestamp. None if malformed."""
    try:
        return datetime.strptime(text.strip(), TIMESTAMP_FORMAT)
    except ValueError:
        return None
