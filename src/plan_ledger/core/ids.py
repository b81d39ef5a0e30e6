"""Canonical ID and timestamp factories.

All modules import from here instead of defining local _uuid()/_now() copies.

Timestamp Rule
--------------
All timestamps are ``datetime`` with ``tzinfo`` set; never naive.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all aggregate and event IDs."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def is_aware(dt: datetime) -> bool:
    """True if *dt* carries a usable UTC offset."""
    return dt.tzinfo is not None and dt.tzinfo.utcoffset(dt) is not None
