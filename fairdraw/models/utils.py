"""Utility helpers for the models package."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def as_utc(dt: datetime) -> datetime:
    """Return ``dt`` in UTC, reading naive values (as SQLite returns them) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    This is a small helper intended for serializing timestamps in JSON.
    """
    if dt is None:
        return None
    return as_utc(dt).isoformat()
