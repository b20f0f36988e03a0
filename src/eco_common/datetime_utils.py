"""UTC datetime utilities."""

from collections.abc import Callable
from datetime import datetime, timezone

# Engines take a clock so tests can freeze or advance time.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)
