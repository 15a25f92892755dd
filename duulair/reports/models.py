# -*- coding: utf-8 -*-
"""Reports domain: Pydantic models.

Response models serialize with camelCase keys for the LIFF report dashboard.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccessType(str, Enum):
    VIEW = "view"
    EXPORT_CSV = "export_csv"
    EXPORT_PDF = "export_pdf"


class PatientProfile(BaseModel):
    id: str
    line_user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    birth_date: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.nickname:
            return self.nickname
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or "Unknown"


class ViewablePatient(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    source: str = Field(..., description="self | group | caregiver")


class AccessLogEntry(BaseModel):
    patient_id: str
    accessed_by_line_user_id: str
    access_type: AccessType
    date_from: str
    date_to: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    accessed_at: datetime


class ReportRange(BaseModel):
    patient_id: str
    date_from: date
    date_to: date

    @property
    def total_days(self) -> int:
        return (self.date_to - self.date_from).days + 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportPatient(_CamelModel):
    id: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None


class ReportPeriod(_CamelModel):
    date_from: str = Field(..., alias="from")
    date_to: str = Field(..., alias="to")
    total_days: int
    days_with_data: int


class BloodPressureOverview(_CamelModel):
    avg_systolic: Optional[int] = None
    avg_diastolic: Optional[int] = None
    trend: str = "unknown"
    readings_count: int = 0
    status: Optional[str] = None


class MedicationOverview(_CamelModel):
    compliance_percent: Optional[int] = None
    total_scheduled: int = 0
    total_taken: int = 0
    total_missed: int = 0


class WaterOverview(_CamelModel):
    total_ml: int = 0
    avg_daily_ml: int = 0
    goal_ml: int = 0
    compliance_percent: Optional[int] = None


class ActivityOverview(_CamelModel):
    total_count: int = 0
    exercise_minutes: int = 0


class ReportOverview(_CamelModel):
    blood_pressure: BloodPressureOverview
    medications: MedicationOverview
    water: WaterOverview
    activities: ActivityOverview


class DayBloodPressure(_CamelModel):
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    status: Optional[str] = None


class DayMedications(_CamelModel):
    scheduled: int = 0
    taken: int = 0
    compliance_percent: Optional[float] = None


class DayWater(_CamelModel):
    ml: int = 0
    goal: int = 0
    compliance_percent: Optional[float] = None


class ActivityItem(_CamelModel):
    type: str
    value: str = ""
    time: str


class DailyReportRow(_CamelModel):
    date: str
    has_data: bool
    bp: Optional[DayBloodPressure] = None
    medications: DayMedications
    water: DayWater
    activities: int = 0
    exercise_minutes: int = 0
    activity_details: List[ActivityItem] = Field(default_factory=list)


class RecentActivity(_CamelModel):
    type: str
    value: str = ""
    time: str
    display_time: str


class ReportSummaryResponse(_CamelModel):
    patient: ReportPatient
    period: ReportPeriod
    summary: ReportOverview
    daily_data: List[DailyReportRow] = Field(default_factory=list)
    recent_activities: List[RecentActivity] = Field(default_factory=list)


class PatientsResponse(BaseModel):
    patients: List[ViewablePatient] = Field(default_factory=list)


class PdfDayRow(BaseModel):
    date: str
    bp: str
    meds: str
    water: int
    activities: int


class PdfReportData(BaseModel):
    generated_at: datetime
    generated_by: str
    date_from: str
    date_to: str
    patient_name: str
    birth_date: Optional[str] = None
    total_days: int
    days_with_data: int
    avg_systolic: Optional[int] = None
    avg_diastolic: Optional[int] = None
    bp_status: Optional[str] = None
    min_systolic: Optional[int] = None
    max_systolic: Optional[int] = None
    meds_scheduled: int = 0
    meds_taken: int = 0
    meds_compliance_percent: Optional[int] = None
    water_total_ml: int = 0
    water_avg_daily_ml: int = 0
    days: List[PdfDayRow] = Field(default_factory=list)
    disclaimer: str = (
        "This report is for informational purposes only and should not be used "
        "as a substitute for professional medical advice."
    )
