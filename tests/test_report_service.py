# -*- coding: utf-8 -*-

from __future__ import annotations

import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional

from duulair.auth.models import LineProfile
from duulair.errors import AccessDenied, NotFound, RateLimited, RequestValidationFailed
from duulair.localtime import fixed_offset
from duulair.reports.models import AccessLogEntry, AccessType, PatientProfile, ReportRange
from duulair.reports.pdf_generator import PDFReportGenerator
from duulair.reports.service import ReportService, bp_trend
from duulair.summaries.models import DailySummary

BANGKOK = fixed_offset(7)
NOW = datetime(2025, 1, 20, 3, 0, tzinfo=timezone.utc)
CALLER = LineProfile(user_id="U-care", display_name="Nok")


def _bp_day(day: int, systolic: int) -> DailySummary:
    return DailySummary(
        patient_id="P1",
        summary_date=f"2025-01-{day:02d}",
        bp_readings_count=1,
        bp_systolic_avg=systolic,
        bp_systolic_min=systolic - 5,
        bp_systolic_max=systolic + 5,
        bp_diastolic_avg=80,
        medications_scheduled=2,
        medications_taken=3,
        water_intake_ml=1000,
        water_goal_ml=1500,
        has_data=True,
    )


class _Store:
    def __init__(self, *, profile: Optional[PatientProfile] = None, rows: Optional[List[DailySummary]] = None,
                 allowed: bool = True, within_limit: bool = True):
        self.profile = profile
        self.rows = rows or []
        self.allowed = allowed
        self.within_limit = within_limit
        self.calls: List[str] = []
        self.entries: List[AccessLogEntry] = []
        self.limits: List[int] = []

    def can_view_patient(self, line_user_id: str, patient_id: str) -> bool:
        self.calls.append("can_view_patient")
        return self.allowed

    def record_access_within_limit(self, entry: AccessLogEntry, *, limit: int, since: datetime) -> bool:
        self.calls.append("record_access_within_limit")
        self.limits.append(limit)
        if self.within_limit:
            self.entries.append(entry)
        return self.within_limit

    def get_patient_profile(self, patient_id: str) -> Optional[PatientProfile]:
        return self.profile

    def list_daily_summaries(self, patient_id: str, date_from: date, date_to: date) -> List[DailySummary]:
        return list(self.rows)

    def fetch_activity_logs(self, patient_id, start, end, task_types=None):
        return []


def _service(store: _Store, **kwargs) -> ReportService:
    return ReportService(store, tz=BANGKOK, clock=lambda: NOW, **kwargs)


class TestBPTrend(unittest.TestCase):
    def test_needs_seven_days(self) -> None:
        self.assertEqual(bp_trend([_bp_day(d, 150) for d in range(1, 7)]), "unknown")

    def test_directions(self) -> None:
        improving = [_bp_day(d, 150) for d in range(1, 5)] + [_bp_day(d, 130) for d in range(5, 9)]
        self.assertEqual(bp_trend(improving), "improving")

        worsening = [_bp_day(d, 125) for d in range(1, 5)] + [_bp_day(d, 140) for d in range(5, 9)]
        self.assertEqual(bp_trend(worsening), "worsening")

        stable = [_bp_day(d, 130) for d in range(1, 5)] + [_bp_day(d, 134) for d in range(5, 9)]
        self.assertEqual(bp_trend(stable), "stable")


class TestRequestGate(unittest.TestCase):
    def _open(self, store: _Store, **params):
        defaults = {"patient_id": "P1", "date_from": "2025-01-01", "date_to": "2025-01-07"}
        defaults.update(params)
        return _service(store).open_request(CALLER, access_type=AccessType.EXPORT_PDF, **defaults)

    def test_parameters_are_checked_before_access(self) -> None:
        store = _Store(allowed=False)
        with self.assertRaises(RequestValidationFailed):
            self._open(store, date_to=None)
        self.assertEqual(store.calls, [])

    def test_access_is_checked_before_the_rate_limit(self) -> None:
        store = _Store(allowed=False)
        with self.assertRaises(AccessDenied):
            self._open(store)
        self.assertEqual(store.calls, ["can_view_patient"])

    def test_rate_limited(self) -> None:
        store = _Store(within_limit=False)
        with self.assertRaises(RateLimited) as ctx:
            self._open(store)
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(store.entries, [])

    def test_accepted_request_is_logged(self) -> None:
        store = _Store()
        report_range = self._open(store, ip_address="10.0.0.1", user_agent="liff")
        self.assertEqual(report_range, ReportRange(patient_id="P1", date_from=date(2025, 1, 1), date_to=date(2025, 1, 7)))
        self.assertEqual(store.limits, [10])
        (entry,) = store.entries
        self.assertEqual(entry.access_type, AccessType.EXPORT_PDF)
        self.assertEqual(entry.accessed_by_line_user_id, "U-care")
        self.assertEqual((entry.date_from, entry.date_to), ("2025-01-01", "2025-01-07"))
        self.assertEqual(entry.ip_address, "10.0.0.1")
        self.assertEqual(entry.accessed_at, NOW)

    def test_configured_range_limit(self) -> None:
        service = _service(_Store(), max_range_days=7)
        with self.assertRaises(RequestValidationFailed) as ctx:
            service.validate_range("P1", "2025-01-01", "2025-01-09")
        self.assertEqual(ctx.exception.message, "Date range cannot exceed 7 days")


class TestReportHandlers(unittest.TestCase):
    def setUp(self) -> None:
        self.range = ReportRange(patient_id="P1", date_from=date(2025, 1, 1), date_to=date(2025, 1, 10))

    def test_unknown_patient(self) -> None:
        with self.assertRaises(NotFound):
            _service(_Store(profile=None)).summary(self.range)

    def test_overview_clamps_missed_doses(self) -> None:
        store = _Store(profile=PatientProfile(id="P1", first_name="Somchai"), rows=[_bp_day(1, 120), _bp_day(2, 124)])
        overview = _service(store).summary(self.range).summary
        self.assertEqual(overview.medications.total_missed, 0)
        self.assertEqual(overview.medications.compliance_percent, 150)
        self.assertEqual(overview.water.avg_daily_ml, 1000)
        self.assertEqual(overview.water.goal_ml, 1500)
        self.assertEqual(overview.water.compliance_percent, 67)
        self.assertEqual(overview.blood_pressure.avg_systolic, 122)

    def test_pdf_export(self) -> None:
        store = _Store(profile=PatientProfile(id="P1", nickname="Yai Malee"), rows=[_bp_day(1, 120), _bp_day(2, 150)])
        data = _service(store).pdf_data(self.range, CALLER)

        self.assertEqual(data.patient_name, "Yai Malee")
        self.assertEqual(data.generated_by, "Nok")
        self.assertEqual((data.min_systolic, data.max_systolic), (115, 155))
        self.assertEqual(data.avg_systolic, 135)
        self.assertEqual([d.bp for d in data.days], ["120/80", "150/80"])
        self.assertEqual(data.days[0].meds, "3/2")

        pdf, filename = _service(store, pdf_generator=PDFReportGenerator()).export_pdf(self.range, CALLER)
        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertEqual(filename, "health-report-Yai-Malee-2025-01-01-to-2025-01-10.pdf")

    def test_missing_configured_font_is_logged(self) -> None:
        with self.assertLogs("duulair.reports.pdf_generator", level="WARNING") as logs:
            generator = PDFReportGenerator(font_path="/nonexistent/fonts/Sarabun.ttf")
        self.assertIn("/nonexistent/fonts/Sarabun.ttf", logs.output[0])
        self.assertIn(generator.font_name, ("ReportFont", "Helvetica"))

    def test_unreadable_configured_font_is_logged(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            font_path = str(Path(tmp) / "broken.ttf")
            Path(font_path).write_bytes(b"not a font")
            with self.assertLogs("duulair.reports.pdf_generator", level="WARNING") as logs:
                PDFReportGenerator(font_path=font_path)
        self.assertTrue(any(font_path in line for line in logs.output))

    def test_csv_filename(self) -> None:
        store = _Store(profile=PatientProfile(id="P1", first_name="Somchai", last_name="Jaidee"))
        content, filename = _service(store).export_csv(self.range, CALLER)
        self.assertEqual(filename, "health-report-Somchai-Jaidee-2025-01-01-to-2025-01-10.csv")
        self.assertIn("# Generated by: Nok (U-care)", content)
        self.assertTrue(content.rstrip("\n").endswith("Has Data"))


if __name__ == "__main__":
    unittest.main()
