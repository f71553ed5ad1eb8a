from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp; stored and compared without tzinfo"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
