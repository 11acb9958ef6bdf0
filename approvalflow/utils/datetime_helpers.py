"""
Datetime helpers
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
