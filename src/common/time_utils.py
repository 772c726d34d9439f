"""Datetime helpers for provider timestamps and activity ages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into a UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except (ValueError, TypeError):
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def age_days(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Full days elapsed since ``value``; never negative."""
    if value is None:
        return None
    reference = ensure_utc(now) if now is not None else utc_now()
    delta = reference - ensure_utc(value)
    return max(0, delta.days)
