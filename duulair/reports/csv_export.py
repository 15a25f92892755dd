# -*- coding: utf-8 -*-
"""CSV rendering of daily summary rows."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

import pandas as pd

from ..auth.models import LineProfile
from ..summaries.models import DailySummary

# (header, DailySummary field)
CSV_COLUMNS = (
    ("Date", "summary_date"),
    ("BP Systolic (avg)", "bp_systolic_avg"),
    ("BP Diastolic (avg)", "bp_diastolic_avg"),
    ("BP Status", "bp_status"),
    ("Heart Rate (avg)", "heart_rate_avg"),
    ("Meds Scheduled", "medications_scheduled"),
    ("Meds Taken", "medications_taken"),
    ("Med Compliance %", "medication_compliance_percent"),
    ("Water (ml)", "water_intake_ml"),
    ("Water Goal (ml)", "water_goal_ml"),
    ("Water Compliance %", "water_compliance_percent"),
    ("Activities", "activities_count"),
    ("Exercise (min)", "exercise_minutes"),
    ("Has Data", "has_data"),
)


def summaries_frame(rows: Sequence[DailySummary]) -> pd.DataFrame:
    records = [row.model_dump(mode="json") for row in rows]
    frame = pd.DataFrame.from_records(records, columns=[field for _, field in CSV_COLUMNS])
    frame["has_data"] = frame["has_data"].map(lambda v: "Yes" if v else "No")
    # Integer columns with gaps would otherwise become floats (120.0).
    for field in ("bp_systolic_avg", "bp_diastolic_avg", "heart_rate_avg"):
        frame[field] = frame[field].astype("Int64")
    return frame.rename(columns={field: header for header, field in CSV_COLUMNS})


def build_summary_csv(
    rows: Sequence[DailySummary],
    *,
    patient_name: str,
    date_from: str,
    date_to: str,
    generated_at: datetime,
    generated_by: LineProfile,
) -> str:
    preamble = [
        f"# Health Report for {patient_name}",
        f"# Period: {date_from} to {date_to}",
        f"# Generated: {generated_at.isoformat()}",
        f"# Generated by: {generated_by.display_name} ({generated_by.user_id})",
        "# WARNING: This data is confidential. Do not share without authorization.",
        "",
    ]
    body = summaries_frame(rows).to_csv(index=False, lineterminator="\n", na_rep="")
    return "\n".join(preamble) + "\n" + body
