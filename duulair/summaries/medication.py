# -*- coding: utf-8 -*-
"""Expected medication doses for a given day."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from ..localtime import weekday_name
from .models import MedicationSchedule


def schedule_applies(schedule: MedicationSchedule, day: date) -> bool:
    frequency = (schedule.frequency_type or "daily").strip().lower()
    if frequency == "daily":
        return True

    if frequency == "specific_days" and schedule.days_of_week:
        if isinstance(schedule.days_of_week, dict):
            days = list(schedule.days_of_week.keys())
        else:
            days = list(schedule.days_of_week)
        today = weekday_name(day)
        return any(str(d).strip().lower() == today for d in days)

    # Unknown frequencies (and specific_days without a day list) count as every day.
    return True


def doses_per_day(schedule: MedicationSchedule) -> int:
    if isinstance(schedule.times, list):
        return len(schedule.times)
    return 1


def count_scheduled_doses(schedules: Iterable[MedicationSchedule], day: date) -> int:
    return sum(doses_per_day(s) for s in schedules if schedule_applies(s, day))
