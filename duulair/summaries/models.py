# -*- coding: utf-8 -*-
"""Daily summaries domain: Pydantic models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TaskType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    MEDICATION = "medication"
    EXERCISE = "exercise"


class BPStatus(str, Enum):
    NORMAL = "normal"
    ELEVATED = "elevated"
    HIGH = "high"
    CRISIS = "crisis"


class RawEventLog(BaseModel):
    id: Optional[str] = None
    patient_id: str
    task_type: str
    value: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class WaterIntakeLog(BaseModel):
    patient_id: str
    amount_ml: Optional[float] = None
    logged_at: datetime


class MedicationSchedule(BaseModel):
    id: Optional[str] = None
    patient_id: str
    name: Optional[str] = None
    times: Any = None
    frequency_type: Optional[str] = None
    days_of_week: Union[List[Any], Dict[str, Any], None] = None
    is_active: bool = True


class BPReading(BaseModel):
    systolic: float
    diastolic: float
    heart_rate: Optional[float] = None


class BPStats(BaseModel):
    systolic_avg: Optional[int] = None
    systolic_min: Optional[int] = None
    systolic_max: Optional[int] = None
    diastolic_avg: Optional[int] = None
    diastolic_min: Optional[int] = None
    diastolic_max: Optional[int] = None
    heart_rate_avg: Optional[int] = None
    heart_rate_min: Optional[int] = None
    heart_rate_max: Optional[int] = None
    status: Optional[BPStatus] = None


class DailySummary(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    patient_id: str
    summary_date: str = Field(..., description="YYYY-MM-DD")
    bp_readings_count: int = Field(0, ge=0)
    bp_systolic_avg: Optional[int] = None
    bp_systolic_min: Optional[int] = None
    bp_systolic_max: Optional[int] = None
    bp_diastolic_avg: Optional[int] = None
    bp_diastolic_min: Optional[int] = None
    bp_diastolic_max: Optional[int] = None
    bp_status: Optional[BPStatus] = None
    heart_rate_avg: Optional[int] = None
    heart_rate_min: Optional[int] = None
    heart_rate_max: Optional[int] = None
    medications_scheduled: int = Field(0, ge=0)
    medications_taken: int = Field(0, ge=0)
    medications_missed: int = Field(0, ge=0)
    medication_compliance_percent: Optional[float] = None
    water_intake_ml: int = Field(0, ge=0)
    water_goal_ml: int = Field(0, ge=0)
    water_compliance_percent: Optional[float] = None
    activities_count: int = Field(0, ge=0)
    exercise_minutes: int = Field(0, ge=0)
    # Reserved; mood is not aggregated yet.
    mood_avg: Optional[float] = None
    has_data: bool = False


class AggregationRequest(BaseModel):
    date: Optional[str] = Field(None, description="YYYY-MM-DD; defaults to yesterday (local)")


class AggregationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    date: str
    processed: int = 0
    errors: int = 0
    error_details: Optional[List[str]] = Field(None, alias="errorDetails")
    message: Optional[str] = None
