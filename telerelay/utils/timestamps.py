import time
from datetime import UTC, datetime


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds (JavaScript `Date.now()`)."""
    return int(time.time() * 1000)


def utc_now() -> datetime:
    return datetime.now(UTC)
