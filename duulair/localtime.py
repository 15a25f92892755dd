# -*- coding: utf-8 -*-
"""Local calendar helpers.

Every day boundary in this service is a calendar day in a fixed UTC offset
(UTC+7 by default), never the host locale.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def fixed_offset(hours: int) -> timezone:
    return timezone(timedelta(hours=hours))


@dataclass(frozen=True)
class DayWindow:
    day: date
    start: datetime
    end: datetime

    @classmethod
    def for_day(cls, day: date, tz: timezone) -> "DayWindow":
        # Both ends inclusive: 00:00:00 .. 23:59:59 local.
        return cls(
            day=day,
            start=datetime.combine(day, time(0, 0, 0), tzinfo=tz),
            end=datetime.combine(day, time(23, 59, 59), tzinfo=tz),
        )

    @classmethod
    def for_range(cls, first: date, last: date, tz: timezone) -> "DayWindow":
        return cls(
            day=first,
            start=datetime.combine(first, time(0, 0, 0), tzinfo=tz),
            end=datetime.combine(last, time(23, 59, 59), tzinfo=tz),
        )


def previous_local_day(now: datetime, tz: timezone) -> date:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date() - timedelta(days=1)


def local_date_of(ts: datetime, tz: timezone) -> date:
    return ts.astimezone(tz).date()


def weekday_name(day: date) -> str:
    return _WEEKDAYS[day.weekday()]


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string; ``None`` when it is not one."""
    if not value:
        return None
    text = value.strip()
    if len(text) != 10:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def to_storage_text(ts: datetime) -> str:
    """Fixed-width UTC text; lexicographic order equals time order."""
    if ts.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def from_storage_text(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def years_between(birth: date, today: date) -> int:
    years = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        years -= 1
    return years
