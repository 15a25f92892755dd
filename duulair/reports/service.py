# -*- coding: utf-8 -*-
"""Report query service.

Reads pre-aggregated ``daily_patient_summaries`` rows for a patient and a
bounded date range. Every date-ranged request goes through ``open_request``,
which checks parameters, authorization and the rate limit, and writes the
audit row, in that order.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from ..auth.models import LineProfile
from ..errors import AccessDenied, NotFound, RateLimited, RequestValidationFailed
from ..localtime import DayWindow, local_date_of, parse_iso_date, years_between
from ..store import DataStore
from ..summaries.bp import classify_bp_status, round_half_up
from ..summaries.models import DailySummary, RawEventLog
from .csv_export import build_summary_csv
from .models import (
    AccessLogEntry,
    AccessType,
    ActivityItem,
    ActivityOverview,
    BloodPressureOverview,
    DailyReportRow,
    DayBloodPressure,
    DayMedications,
    DayWater,
    MedicationOverview,
    PatientProfile,
    PatientsResponse,
    PdfDayRow,
    PdfReportData,
    RecentActivity,
    ReportOverview,
    ReportPatient,
    ReportPeriod,
    ReportRange,
    ReportSummaryResponse,
    WaterOverview,
)
from .pdf_generator import PDFReportGenerator

logger = logging.getLogger(__name__)

# Logged actions shown on the dashboard; queries/intents are excluded.
ACTIVITY_TYPES: Sequence[str] = (
    "medication",
    "water",
    "walk",
    "blood_pressure",
    "exercise",
    "food",
    "patient_conditions",
    "sleep",
    "mood",
    "vitals",
)

RECENT_ACTIVITY_LIMIT = 20
TREND_MIN_DAYS = 7
TREND_THRESHOLD = 5

DEFAULT_RATE_LIMITS: Dict[str, int] = {"view": 100, "export_csv": 10, "export_pdf": 10}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def bp_trend(bp_days: Sequence[DailySummary]) -> str:
    """Compare systolic means of the first and second half of the BP days."""
    if len(bp_days) < TREND_MIN_DAYS:
        return "unknown"
    half = len(bp_days) // 2
    first = _mean([d.bp_systolic_avg or 0 for d in bp_days[:half]])
    second = _mean([d.bp_systolic_avg or 0 for d in bp_days[half:]])
    if second < first - TREND_THRESHOLD:
        return "improving"
    if second > first + TREND_THRESHOLD:
        return "worsening"
    return "stable"


def _percent(numerator: float, denominator: float) -> Optional[int]:
    if denominator <= 0:
        return None
    return int(round_half_up(numerator / denominator * 100))


class ReportService:
    def __init__(
        self,
        store: DataStore,
        *,
        tz: timezone,
        max_range_days: int = 90,
        rate_window_minutes: int = 60,
        rate_limits: Optional[Dict[str, int]] = None,
        default_water_goal_ml: int = 2000,
        clock: Optional[Callable[[], datetime]] = None,
        pdf_generator: Optional[PDFReportGenerator] = None,
    ) -> None:
        self.store = store
        self.tz = tz
        self.max_range_days = max_range_days
        self.rate_window = timedelta(minutes=rate_window_minutes)
        self.rate_limits = dict(DEFAULT_RATE_LIMITS)
        if rate_limits:
            self.rate_limits.update(rate_limits)
        self.default_water_goal_ml = default_water_goal_ml
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.pdf_generator = pdf_generator or PDFReportGenerator()

    # ---- request gate ----

    def validate_range(
        self, patient_id: Optional[str], date_from: Optional[str], date_to: Optional[str]
    ) -> ReportRange:
        if not patient_id or not date_from or not date_to:
            raise RequestValidationFailed("Missing required parameters: patientId, from, to")
        start = parse_iso_date(date_from)
        end = parse_iso_date(date_to)
        if start is None or end is None:
            raise RequestValidationFailed("Invalid date format. Use YYYY-MM-DD")
        span = (end - start).days
        if span > self.max_range_days:
            raise RequestValidationFailed(f"Date range cannot exceed {self.max_range_days} days")
        if span < 0:
            raise RequestValidationFailed("from date must be before to date")
        return ReportRange(patient_id=patient_id, date_from=start, date_to=end)

    def open_request(
        self,
        profile: LineProfile,
        *,
        patient_id: Optional[str],
        date_from: Optional[str],
        date_to: Optional[str],
        access_type: AccessType,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ReportRange:
        report_range = self.validate_range(patient_id, date_from, date_to)

        if not self.store.can_view_patient(profile.user_id, report_range.patient_id):
            logger.info("Access denied: user %s -> patient %s", profile.user_id, report_range.patient_id)
            raise AccessDenied("You do not have access to this patient data")

        now = self._clock()
        entry = AccessLogEntry(
            patient_id=report_range.patient_id,
            accessed_by_line_user_id=profile.user_id,
            access_type=access_type,
            date_from=report_range.date_from.isoformat(),
            date_to=report_range.date_to.isoformat(),
            ip_address=ip_address,
            user_agent=user_agent,
            accessed_at=now,
        )
        limit = self.rate_limits[access_type.value]
        if not self.store.record_access_within_limit(entry, limit=limit, since=now - self.rate_window):
            logger.warning("Rate limit exceeded: user %s (%s)", profile.user_id, access_type.value)
            raise RateLimited("Rate limit exceeded. Please try again later.")
        return report_range

    # ---- handlers ----

    def _local_time(self, ts: datetime, fmt: str) -> str:
        return ts.astimezone(self.tz).strftime(fmt)

    def _age(self, profile: PatientProfile) -> Optional[int]:
        birth = parse_iso_date((profile.birth_date or "")[:10])
        if birth is None:
            return None
        return years_between(birth, local_date_of(self._clock(), self.tz))

    def summary(self, report_range: ReportRange) -> ReportSummaryResponse:
        profile = self.store.get_patient_profile(report_range.patient_id)
        if profile is None:
            raise NotFound("Patient not found")

        rows = self.store.list_daily_summaries(
            report_range.patient_id, report_range.date_from, report_range.date_to
        )
        window = DayWindow.for_range(report_range.date_from, report_range.date_to, self.tz)
        logs = self.store.fetch_activity_logs(
            report_range.patient_id, window.start, window.end, list(ACTIVITY_TYPES)
        )
        logs = sorted(logs, key=lambda log: log.timestamp, reverse=True)

        details_by_date: Dict[str, List[ActivityItem]] = {}
        for log in logs:
            day = local_date_of(log.timestamp, self.tz).isoformat()
            details_by_date.setdefault(day, []).append(
                ActivityItem(type=log.task_type, value=log.value or "", time=self._local_time(log.timestamp, "%H:%M"))
            )

        return ReportSummaryResponse(
            patient=ReportPatient(
                id=profile.id,
                name=profile.display_name,
                first_name=profile.first_name,
                last_name=profile.last_name,
                age=self._age(profile),
            ),
            period=ReportPeriod(
                date_from=report_range.date_from.isoformat(),
                date_to=report_range.date_to.isoformat(),
                total_days=report_range.total_days,
                days_with_data=sum(1 for r in rows if r.has_data),
            ),
            summary=self._overview(rows),
            daily_data=[self._daily_row(r, details_by_date.get(r.summary_date, [])) for r in rows],
            recent_activities=[self._recent(log) for log in logs[:RECENT_ACTIVITY_LIMIT]],
        )

    def _overview(self, rows: Sequence[DailySummary]) -> ReportOverview:
        bp_days = [r for r in rows if r.bp_readings_count > 0]
        avg_systolic = avg_diastolic = None
        if bp_days:
            avg_systolic = int(round_half_up(_mean([r.bp_systolic_avg or 0 for r in bp_days])))
            avg_diastolic = int(round_half_up(_mean([r.bp_diastolic_avg or 0 for r in bp_days])))
        status = classify_bp_status(avg_systolic, avg_diastolic)

        scheduled = sum(r.medications_scheduled for r in rows)
        taken = sum(r.medications_taken for r in rows)

        days_with_data = sum(1 for r in rows if r.has_data)
        total_water = sum(r.water_intake_ml for r in rows)
        avg_daily_water = int(round_half_up(total_water / days_with_data)) if days_with_data else 0
        goal = (
            int(round_half_up(_mean([r.water_goal_ml for r in rows]))) if rows else self.default_water_goal_ml
        )

        return ReportOverview(
            blood_pressure=BloodPressureOverview(
                avg_systolic=avg_systolic,
                avg_diastolic=avg_diastolic,
                trend=bp_trend(bp_days),
                readings_count=sum(r.bp_readings_count for r in bp_days),
                status=status.value if status else None,
            ),
            medications=MedicationOverview(
                compliance_percent=_percent(taken, scheduled),
                total_scheduled=scheduled,
                total_taken=taken,
                total_missed=max(0, scheduled - taken),
            ),
            water=WaterOverview(
                total_ml=total_water,
                avg_daily_ml=avg_daily_water,
                goal_ml=goal,
                compliance_percent=_percent(avg_daily_water, goal),
            ),
            activities=ActivityOverview(
                total_count=sum(r.activities_count for r in rows),
                exercise_minutes=sum(r.exercise_minutes for r in rows),
            ),
        )

    @staticmethod
    def _daily_row(row: DailySummary, details: List[ActivityItem]) -> DailyReportRow:
        bp = None
        if row.bp_readings_count > 0:
            bp = DayBloodPressure(systolic=row.bp_systolic_avg, diastolic=row.bp_diastolic_avg, status=row.bp_status)
        return DailyReportRow(
            date=row.summary_date,
            has_data=row.has_data,
            bp=bp,
            medications=DayMedications(
                scheduled=row.medications_scheduled,
                taken=row.medications_taken,
                compliance_percent=row.medication_compliance_percent,
            ),
            water=DayWater(
                ml=row.water_intake_ml,
                goal=row.water_goal_ml,
                compliance_percent=row.water_compliance_percent,
            ),
            activities=row.activities_count,
            exercise_minutes=row.exercise_minutes,
            activity_details=details,
        )

    def _recent(self, log: RawEventLog) -> RecentActivity:
        return RecentActivity(
            type=log.task_type,
            value=log.value or "",
            time=log.timestamp.astimezone(self.tz).isoformat(),
            display_time=self._local_time(log.timestamp, "%d %b %H:%M"),
        )

    def _patient_name(self, patient_id: str) -> tuple[str, Optional[PatientProfile]]:
        profile = self.store.get_patient_profile(patient_id)
        return (profile.display_name if profile else "Unknown"), profile

    @staticmethod
    def _filename(name: str, report_range: ReportRange, ext: str) -> str:
        return f"health-report-{'-'.join(name.split())}-{report_range.date_from}-to-{report_range.date_to}.{ext}"

    def export_csv(self, report_range: ReportRange, requested_by: LineProfile) -> tuple[str, str]:
        """Return ``(csv_text, filename)``."""
        name, _ = self._patient_name(report_range.patient_id)
        rows = self.store.list_daily_summaries(
            report_range.patient_id, report_range.date_from, report_range.date_to
        )
        content = build_summary_csv(
            rows,
            patient_name=name,
            date_from=report_range.date_from.isoformat(),
            date_to=report_range.date_to.isoformat(),
            generated_at=self._clock(),
            generated_by=requested_by,
        )
        return content, self._filename(name, report_range, "csv")

    def export_pdf(self, report_range: ReportRange, requested_by: LineProfile) -> tuple[bytes, str]:
        """Return ``(pdf_bytes, filename)``."""
        data = self.pdf_data(report_range, requested_by)
        return self.pdf_generator.generate_report(data), self._filename(data.patient_name, report_range, "pdf")

    def pdf_data(self, report_range: ReportRange, requested_by: LineProfile) -> PdfReportData:
        name, profile = self._patient_name(report_range.patient_id)
        rows = self.store.list_daily_summaries(
            report_range.patient_id, report_range.date_from, report_range.date_to
        )
        overview = self._overview(rows)
        bp_days = [r for r in rows if r.bp_readings_count > 0]
        systolic_mins = [r.bp_systolic_min for r in bp_days if r.bp_systolic_min is not None]
        systolic_maxs = [r.bp_systolic_max for r in bp_days if r.bp_systolic_max is not None]

        return PdfReportData(
            generated_at=self._clock(),
            generated_by=requested_by.display_name or requested_by.user_id,
            date_from=report_range.date_from.isoformat(),
            date_to=report_range.date_to.isoformat(),
            patient_name=name,
            birth_date=profile.birth_date if profile else None,
            total_days=len(rows),
            days_with_data=sum(1 for r in rows if r.has_data),
            avg_systolic=overview.blood_pressure.avg_systolic,
            avg_diastolic=overview.blood_pressure.avg_diastolic,
            bp_status=overview.blood_pressure.status,
            min_systolic=min(systolic_mins) if systolic_mins else None,
            max_systolic=max(systolic_maxs) if systolic_maxs else None,
            meds_scheduled=overview.medications.total_scheduled,
            meds_taken=overview.medications.total_taken,
            meds_compliance_percent=overview.medications.compliance_percent,
            water_total_ml=overview.water.total_ml,
            water_avg_daily_ml=overview.water.avg_daily_ml,
            days=[
                PdfDayRow(
                    date=r.summary_date,
                    bp=f"{r.bp_systolic_avg}/{r.bp_diastolic_avg}" if r.bp_systolic_avg else "-",
                    meds=f"{r.medications_taken}/{r.medications_scheduled}",
                    water=r.water_intake_ml,
                    activities=r.activities_count,
                )
                for r in rows
            ],
        )

    def patients(self, profile: LineProfile) -> PatientsResponse:
        return PatientsResponse(patients=self.store.list_viewable_patients(profile.user_id))
