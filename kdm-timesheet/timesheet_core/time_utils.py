"""Shared wall-clock helpers used by slot generation, merging and submission."""

from __future__ import annotations


def parse_hhmm_to_minutes(value: str | None) -> int | None:
    """Parse HH:MM into minutes after midnight."""
    if not value or ":" not in str(value):
        return None
    try:
        hh, mm = str(value).split(":", 1)
        h = int(hh)
        m = int(mm)
    except (TypeError, ValueError):
        return None
    if h < 0 or h > 24 or m < 0 or m > 59 or (h == 24 and m != 0):
        return None
    return h * 60 + m


def require_minutes(value: str, *, field: str) -> int:
    minutes = parse_hhmm_to_minutes(value)
    if minutes is None:
        raise ValueError(f"{field} must be HH:MM, got {value!r}")
    return minutes


def format_minutes(minutes: int) -> str:
    """Render minutes after midnight as zero-padded HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def split_timestamp(value: str | None) -> tuple[str, str] | None:
    """Split an ISO timestamp into its ("YYYY-MM-DD", "HH:MM") parts.

    The remote service stores wall-clock times, so no timezone conversion
    happens here: "2024-01-10T08:30:00Z" -> ("2024-01-10", "08:30").
    """
    if not value or "T" not in value:
        return None
    day, clock = value.split("T", 1)
    hhmm = clock[:5]
    if len(day) != 10 or parse_hhmm_to_minutes(hhmm) is None:
        return None
    return day, hhmm


def ensure_utc_suffix(value: str) -> str:
    return value if value.endswith("Z") else f"{value}Z"


def slot_timestamp(day: str, hhmm: str) -> str:
    """Build the UTC-suffixed timestamp the remote API expects for a slot edge."""
    return ensure_utc_suffix(f"{day}T{hhmm}:00")
