"""Date/time helpers.

All timestamps are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return a timezone-aware datetime in UTC."""
    return datetime.now(UTC)


def is_older_than(moment: datetime, seconds: float, now: datetime | None = None) -> bool:
    """True when ``moment`` lies more than ``seconds`` before ``now``."""
    reference = now or utcnow()
    return reference - moment > timedelta(seconds=seconds)
