"""
Timestamp Utilities

Parsing and formatting of feed timestamps. Free of I/O.
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

# Python's fromisoformat accepts at most 6 fractional digits
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values (SQLite drops the offset) are taken to be UTC already.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: Feed value, e.g. "2024-05-01T12:30:00.123Z"

    Returns:
        datetime or None when the value is absent or unparseable
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)

    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a YYYY-MM-DD date (a trailing time part is ignored).

    Returns:
        date or None when the value is absent or unparseable
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def to_odata_literal(dt: datetime) -> str:
    """
    Serialize a datetime as an OData DateTimeOffset literal in UTC.

    Example: 2024-05-01T12:30:00Z
    """
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")
