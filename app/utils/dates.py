# app/utils/dates.py
"""
Timestamp helpers.

All timestamps are persisted as naive ISO strings with millisecond precision
(``2024-05-01T10:00:00.000``) so that range filters can compare them as text.
Timezone-aware values are converted to UTC before the offset is dropped.
"""
from datetime import datetime, timezone
from typing import Any, Optional


def to_iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds")


def now_iso() -> str:
    return to_iso(datetime.now())


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse provider / query timestamps. Returns None for empty or unparseable values."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def iso_or_none(value: Any) -> Optional[str]:
    parsed = parse_datetime(value)
    return to_iso(parsed) if parsed else None
