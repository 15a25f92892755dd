# -*- coding: utf-8 -*-
"""Daily summary aggregation.

For one local day, every patient's raw logs (BP readings, water, medication
logs, activities) are reduced into a single ``DailySummary`` row, upserted by
``(patient_id, summary_date)``. Re-running a day overwrites the same rows.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from ..errors import RequestValidationFailed
from ..localtime import DayWindow, parse_iso_date, previous_local_day
from ..store import DataStore
from .bp import calculate_bp_stats, parse_bp_reading, round_half_up
from .medication import count_scheduled_doses
from .models import (
    AggregationResult,
    DailySummary,
    MedicationSchedule,
    RawEventLog,
    TaskType,
    WaterIntakeLog,
)

logger = logging.getLogger(__name__)

DEFAULT_EXERCISE_MINUTES = 30


def compliance_percent(numerator: float, denominator: Optional[float]) -> Optional[float]:
    if not denominator:
        return None
    return round_half_up(numerator / denominator * 100, 2)


def _minutes(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        minutes = float(value)
    elif isinstance(value, str):
        try:
            minutes = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(minutes) or minutes <= 0:
        return None
    return minutes


def exercise_minutes(metadata: Mapping[str, Any]) -> float:
    # First positive finite value of duration_minutes, minutes; otherwise a default session.
    for key in ("duration_minutes", "minutes"):
        minutes = _minutes(metadata.get(key))
        if minutes:
            return minutes
    return DEFAULT_EXERCISE_MINUTES


def _water_amount(log: WaterIntakeLog) -> float:
    amount = log.amount_ml
    # Negative and non-finite amounts count as zero.
    if amount is None or not math.isfinite(amount) or amount < 0:
        return 0.0
    return float(amount)


def build_daily_summary(
    patient_id: str,
    day: date,
    *,
    bp_logs: Iterable[RawEventLog],
    water_logs: Iterable[WaterIntakeLog],
    water_goal_ml: Optional[int],
    schedules: Iterable[MedicationSchedule],
    medication_logs: Iterable[RawEventLog],
    activities: Iterable[RawEventLog],
    default_water_goal_ml: int = 2000,
) -> DailySummary:
    readings = []
    for log in bp_logs:
        reading = parse_bp_reading(log.value, log.metadata)
        if reading is not None:
            readings.append(reading)
    bp = calculate_bp_stats(readings)

    total_water = int(round_half_up(sum(_water_amount(log) for log in water_logs)))
    goal_ml = default_water_goal_ml if water_goal_ml is None else int(water_goal_ml)

    scheduled = count_scheduled_doses(schedules, day)
    taken = len(list(medication_logs))

    activities = list(activities)
    minutes = sum(
        exercise_minutes(a.metadata) for a in activities if a.task_type == TaskType.EXERCISE.value
    )

    has_data = bool(readings) or total_water > 0 or taken > 0 or len(activities) > 0

    return DailySummary(
        patient_id=patient_id,
        summary_date=day.isoformat(),
        bp_readings_count=len(readings),
        bp_systolic_avg=bp.systolic_avg,
        bp_systolic_min=bp.systolic_min,
        bp_systolic_max=bp.systolic_max,
        bp_diastolic_avg=bp.diastolic_avg,
        bp_diastolic_min=bp.diastolic_min,
        bp_diastolic_max=bp.diastolic_max,
        bp_status=bp.status,
        heart_rate_avg=bp.heart_rate_avg,
        heart_rate_min=bp.heart_rate_min,
        heart_rate_max=bp.heart_rate_max,
        medications_scheduled=scheduled,
        medications_taken=taken,
        medications_missed=max(0, scheduled - taken),
        medication_compliance_percent=compliance_percent(taken, scheduled),
        water_intake_ml=total_water,
        water_goal_ml=goal_ml,
        water_compliance_percent=compliance_percent(total_water, goal_ml),
        activities_count=len(activities),
        exercise_minutes=int(round_half_up(minutes)),
        mood_avg=None,
        has_data=has_data,
    )


class DailyAggregator:
    """Computes and persists one ``DailySummary`` per patient for a local day."""

    def __init__(
        self,
        store: DataStore,
        *,
        tz: timezone,
        default_water_goal_ml: int = 2000,
        concurrency: int = 4,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.tz = tz
        self.default_water_goal_ml = default_water_goal_ml
        self.concurrency = max(1, int(concurrency))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def resolve_target_date(self, requested: Optional[str]) -> date:
        if requested is None or not str(requested).strip():
            return previous_local_day(self._clock(), self.tz)
        day = parse_iso_date(str(requested))
        if day is None:
            raise RequestValidationFailed("Invalid date format. Use YYYY-MM-DD")
        return day

    async def _fetch(self, patient_id: str, window: DayWindow) -> Tuple[Any, ...]:
        store = self.store
        return await asyncio.gather(
            asyncio.to_thread(
                store.fetch_activity_logs, patient_id, window.start, window.end, [TaskType.BLOOD_PRESSURE.value]
            ),
            asyncio.to_thread(store.fetch_water_logs, patient_id, window.start, window.end),
            asyncio.to_thread(store.fetch_water_goal, patient_id),
            asyncio.to_thread(store.fetch_active_medication_schedules, patient_id),
            asyncio.to_thread(
                store.fetch_activity_logs, patient_id, window.start, window.end, [TaskType.MEDICATION.value]
            ),
            asyncio.to_thread(store.fetch_activity_logs, patient_id, window.start, window.end, None),
        )

    async def aggregate_patient(self, patient_id: str, day: date) -> DailySummary:
        window = DayWindow.for_day(day, self.tz)
        bp_logs, water_logs, water_goal, schedules, medication_logs, activities = await self._fetch(
            patient_id, window
        )
        return build_daily_summary(
            patient_id,
            day,
            bp_logs=bp_logs,
            water_logs=water_logs,
            water_goal_ml=water_goal,
            schedules=schedules,
            medication_logs=medication_logs,
            activities=activities,
            default_water_goal_ml=self.default_water_goal_ml,
        )

    async def _process_patient(self, patient_id: str, day: date, gate: asyncio.Semaphore) -> Optional[str]:
        async with gate:
            try:
                summary = await self.aggregate_patient(patient_id, day)
                await asyncio.to_thread(self.store.upsert_daily_summary, summary)
            except Exception as exc:
                message = f"Patient {patient_id}: {str(exc) or type(exc).__name__}"
                logger.error("Aggregation failed: %s", message)
                return message
        return None

    async def run(self, day: date) -> AggregationResult:
        logger.info("Starting daily aggregation for %s", day.isoformat())

        # A failure here is fatal for the whole run.
        patient_ids: List[str] = await asyncio.to_thread(self.store.list_patient_ids)
        if not patient_ids:
            logger.info("No patients found")
            return AggregationResult(date=day.isoformat(), message="No patients to process")

        logger.info("Processing %d patients", len(patient_ids))
        gate = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(*(self._process_patient(pid, day, gate) for pid in patient_ids))

        errors = [msg for msg in outcomes if msg is not None]
        processed = len(outcomes) - len(errors)
        logger.info("Aggregation for %s completed: %d processed, %d errors", day.isoformat(), processed, len(errors))
        return AggregationResult(
            date=day.isoformat(),
            processed=processed,
            errors=len(errors),
            error_details=errors or None,
        )
