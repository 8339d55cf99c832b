"""Time helpers.

All timestamps that leave this package are ISO-8601 UTC strings with an
explicit ``+00:00`` offset and millisecond precision, e.g.
``2024-03-01T08:00:00.000+00:00``. The format is fixed width, so string
comparison orders them chronologically.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_now_iso() -> str:
    return format_utc(utc_now())


def format_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are read as UTC.

    Raises ``ValueError`` for anything that is not a timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_utc_iso(value: str | datetime) -> str:
    return format_utc(parse_timestamp(value))


def canonical_timestamp(value: str) -> str:
    """Return the canonical UTC form of ``value``, or ``value`` unchanged if unparseable."""
    try:
        return to_utc_iso(value)
    except (TypeError, ValueError, OverflowError):
        return value


def _as_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return parse_timestamp(value).astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    return parse_timestamp(text).astimezone(timezone.utc).date()


def day_start_utc(value: str | date) -> str:
    return format_utc(datetime.combine(_as_date(value), time.min, tzinfo=timezone.utc))


def day_end_utc(value: str | date) -> str:
    # Inclusive upper bound at millisecond precision.
    return format_utc(
        datetime.combine(_as_date(value), time(23, 59, 59, 999000), tzinfo=timezone.utc)
    )
