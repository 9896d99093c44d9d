from datetime import datetime, timezone


def utcnow() -> datetime:
    """Single source of wall-clock time for hold expiry decisions."""
    return datetime.now(timezone.utc)
