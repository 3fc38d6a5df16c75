"""Clock utilities.

All timestamps in player-pulse are epoch milliseconds on the server
clock.  This module is the single source of "now" so tests can
monkey-patch it trivially.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(utc_now().timestamp() * 1000)
