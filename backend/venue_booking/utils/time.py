from datetime import datetime, timezone


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, matching the naive UTC columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
