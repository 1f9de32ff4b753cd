"""Time helpers. The core works in timezone-aware UTC only."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
