from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (MySQL DATETIME has no zone).

    Note: Wrapped so tests can patch/mock it easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value is not None else None
