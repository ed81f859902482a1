from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

UTC = timezone.utc

DATE_WINDOW_DAYS = 7


def today_iso() -> str:
    return datetime.now(UTC).date().isoformat()


def now_utc_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def ensure_date(value: str) -> str:
    date.fromisoformat(value)
    return value


def date_label(offset: int, d: date) -> str:
    if offset == 0:
        return "Today"
    if offset == -1:
        return "Yesterday"
    if offset == 1:
        return "Tomorrow"
    return d.strftime("%a %d %b")


def date_options(today: date | None = None, window: int = DATE_WINDOW_DAYS) -> list[dict[str, str]]:
    """Selectable dates from ``window`` days back to ``window`` days ahead."""
    if today is None:
        today = datetime.now(UTC).date()
    options = []
    for offset in range(-window, window + 1):
        d = today + timedelta(days=offset)
        options.append({"value": d.isoformat(), "label": date_label(offset, d)})
    return options
