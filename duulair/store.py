# -*- coding: utf-8 -*-
"""Data access for the aggregator and the report service.

``DataStore`` is the capability both components are constructed with;
``SQLiteDataStore`` backs it with the app database.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import uuid4

from .app_db import db_conn, init_app_db
from .localtime import from_storage_text, to_storage_text
from .reports.models import AccessLogEntry, PatientProfile, ViewablePatient
from .summaries.models import DailySummary, MedicationSchedule, RawEventLog, WaterIntakeLog

logger = logging.getLogger(__name__)

_SUMMARY_COLUMNS = (
    "patient_id",
    "summary_date",
    "bp_readings_count",
    "bp_systolic_avg",
    "bp_systolic_min",
    "bp_systolic_max",
    "bp_diastolic_avg",
    "bp_diastolic_min",
    "bp_diastolic_max",
    "bp_status",
    "heart_rate_avg",
    "heart_rate_min",
    "heart_rate_max",
    "medications_scheduled",
    "medications_taken",
    "medications_missed",
    "medication_compliance_percent",
    "water_intake_ml",
    "water_goal_ml",
    "water_compliance_percent",
    "activities_count",
    "exercise_minutes",
    "mood_avg",
    "has_data",
)


class DataStore(Protocol):
    def list_patient_ids(self) -> List[str]: ...

    def fetch_activity_logs(
        self,
        patient_id: str,
        start: datetime,
        end: datetime,
        task_types: Optional[Sequence[str]] = None,
    ) -> List[RawEventLog]: ...

    def fetch_water_logs(self, patient_id: str, start: datetime, end: datetime) -> List[WaterIntakeLog]: ...

    def fetch_water_goal(self, patient_id: str) -> Optional[int]: ...

    def fetch_active_medication_schedules(self, patient_id: str) -> List[MedicationSchedule]: ...

    def upsert_daily_summary(self, summary: DailySummary) -> None: ...

    def list_daily_summaries(self, patient_id: str, date_from: date, date_to: date) -> List[DailySummary]: ...

    def get_patient_profile(self, patient_id: str) -> Optional[PatientProfile]: ...

    def can_view_patient(self, line_user_id: str, patient_id: str) -> bool: ...

    def list_viewable_patients(self, line_user_id: str) -> List[ViewablePatient]: ...

    def record_access_within_limit(self, entry: AccessLogEntry, *, limit: int, since: datetime) -> bool: ...


def _loads(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed JSON column value: %.80s", raw)
        return None


def _event_from_row(row: Any) -> RawEventLog:
    metadata = _loads(row["metadata_json"])
    return RawEventLog(
        id=row["id"],
        patient_id=row["patient_id"],
        task_type=row["task_type"],
        value=row["value"],
        metadata=metadata if isinstance(metadata, dict) else {},
        timestamp=from_storage_text(row["timestamp"]),
    )


def _schedule_from_row(row: Any) -> MedicationSchedule:
    days = _loads(row["days_of_week_json"])
    return MedicationSchedule(
        id=row["id"],
        patient_id=row["patient_id"],
        name=row["name"],
        times=_loads(row["times_json"]),
        frequency_type=row["frequency_type"],
        days_of_week=days if isinstance(days, (list, dict)) else None,
        is_active=bool(row["is_active"]),
    )


def _summary_from_row(row: Any) -> DailySummary:
    data: Dict[str, Any] = {col: row[col] for col in _SUMMARY_COLUMNS}
    data["has_data"] = bool(data["has_data"])
    return DailySummary.model_validate(data)


def _profile_from_row(row: Any) -> PatientProfile:
    return PatientProfile(
        id=row["id"],
        line_user_id=row["line_user_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        nickname=row["nickname"],
        birth_date=row["birth_date"],
    )


class SQLiteDataStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        init_app_db(self.db_path)

    # ---- raw data (read-only) ----

    def list_patient_ids(self) -> List[str]:
        with db_conn(self.db_path) as conn:
            rows = conn.execute("SELECT id FROM patient_profiles ORDER BY created_at ASC, id ASC").fetchall()
            return [r["id"] for r in rows]

    def fetch_activity_logs(
        self,
        patient_id: str,
        start: datetime,
        end: datetime,
        task_types: Optional[Sequence[str]] = None,
    ) -> List[RawEventLog]:
        sql = """
            SELECT id, patient_id, task_type, value, metadata_json, timestamp
            FROM activity_logs
            WHERE patient_id = ? AND timestamp >= ? AND timestamp <= ?
        """
        params: List[Any] = [patient_id, to_storage_text(start), to_storage_text(end)]
        if task_types:
            sql += f" AND task_type IN ({', '.join('?' for _ in task_types)})"
            params.extend(task_types)
        sql += " ORDER BY timestamp ASC"
        with db_conn(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
            return [_event_from_row(r) for r in rows]

    def fetch_water_logs(self, patient_id: str, start: datetime, end: datetime) -> List[WaterIntakeLog]:
        with db_conn(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT patient_id, amount_ml, logged_at
                FROM water_intake_logs
                WHERE patient_id = ? AND logged_at >= ? AND logged_at <= ?
                ORDER BY logged_at ASC
                """,
                (patient_id, to_storage_text(start), to_storage_text(end)),
            ).fetchall()
            return [
                WaterIntakeLog(
                    patient_id=r["patient_id"],
                    amount_ml=r["amount_ml"],
                    logged_at=from_storage_text(r["logged_at"]),
                )
                for r in rows
            ]

    def fetch_water_goal(self, patient_id: str) -> Optional[int]:
        with db_conn(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT daily_goal_ml FROM water_intake_goals
                WHERE patient_id = ? AND is_active = 1
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (patient_id,),
            ).fetchone()
            return int(row["daily_goal_ml"]) if row else None

    def fetch_active_medication_schedules(self, patient_id: str) -> List[MedicationSchedule]:
        with db_conn(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT id, patient_id, name, times_json, frequency_type, days_of_week_json, is_active
                FROM patient_medications
                WHERE patient_id = ? AND is_active = 1
                """,
                (patient_id,),
            ).fetchall()
            return [_schedule_from_row(r) for r in rows]

    # ---- daily summaries ----

    def upsert_daily_summary(self, summary: DailySummary) -> None:
        data = summary.model_dump(mode="json")
        data["has_data"] = 1 if summary.has_data else 0
        columns = list(_SUMMARY_COLUMNS) + ["aggregated_at"]
        values = [data[c] for c in _SUMMARY_COLUMNS] + [to_storage_text(datetime.now(timezone.utc))]
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c not in ("patient_id", "summary_date"))
        with db_conn(self.db_path) as conn:
            conn.execute(
                f"""
                INSERT INTO daily_patient_summaries ({', '.join(columns)})
                VALUES ({', '.join('?' for _ in columns)})
                ON CONFLICT(patient_id, summary_date) DO UPDATE SET {updates}
                """,
                values,
            )

    def list_daily_summaries(self, patient_id: str, date_from: date, date_to: date) -> List[DailySummary]:
        with db_conn(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT {', '.join(_SUMMARY_COLUMNS)}
                FROM daily_patient_summaries
                WHERE patient_id = ? AND summary_date >= ? AND summary_date <= ?
                ORDER BY summary_date ASC
                """,
                (patient_id, date_from.isoformat(), date_to.isoformat()),
            ).fetchall()
            return [_summary_from_row(r) for r in rows]

    # ---- patients & access ----

    def get_patient_profile(self, patient_id: str) -> Optional[PatientProfile]:
        with db_conn(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT id, line_user_id, first_name, last_name, nickname, birth_date
                FROM patient_profiles WHERE id = ?
                """,
                (patient_id,),
            ).fetchone()
            return _profile_from_row(row) if row else None

    def can_view_patient(self, line_user_id: str, patient_id: str) -> bool:
        with db_conn(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT 1 FROM patient_profiles WHERE id = ? AND line_user_id = ?
                UNION ALL
                SELECT 1 FROM caregiver_links
                WHERE patient_id = ? AND caregiver_line_user_id = ? AND status = 'active'
                UNION ALL
                SELECT 1 FROM group_members gm
                JOIN group_patients gp ON gp.group_id = gm.group_id
                WHERE gp.patient_id = ? AND gm.line_user_id = ? AND gm.is_active = 1
                LIMIT 1
                """,
                (patient_id, line_user_id, patient_id, line_user_id, patient_id, line_user_id),
            ).fetchone()
            return row is not None

    def list_viewable_patients(self, line_user_id: str) -> List[ViewablePatient]:
        found: List[ViewablePatient] = []
        with db_conn(self.db_path) as conn:
            for row in conn.execute(
                """
                SELECT id, line_user_id, first_name, last_name, nickname, birth_date
                FROM patient_profiles WHERE line_user_id = ?
                """,
                (line_user_id,),
            ).fetchall():
                profile = _profile_from_row(row)
                found.append(ViewablePatient(id=profile.id, name=profile.display_name, source="self"))

            for row in conn.execute(
                """
                SELECT p.id, p.line_user_id, p.first_name, p.last_name, p.nickname, p.birth_date,
                       g.id AS group_id, g.group_name
                FROM group_members gm
                JOIN care_groups g ON g.id = gm.group_id
                JOIN group_patients gp ON gp.group_id = g.id
                JOIN patient_profiles p ON p.id = gp.patient_id
                WHERE gm.line_user_id = ? AND gm.is_active = 1
                ORDER BY g.created_at ASC, p.id ASC
                """,
                (line_user_id,),
            ).fetchall():
                profile = _profile_from_row(row)
                found.append(
                    ViewablePatient(
                        id=profile.id,
                        name=profile.display_name,
                        group_id=row["group_id"],
                        group_name=row["group_name"] or "Unknown Group",
                        source="group",
                    )
                )

            for row in conn.execute(
                """
                SELECT p.id, p.line_user_id, p.first_name, p.last_name, p.nickname, p.birth_date
                FROM caregiver_links cl
                JOIN patient_profiles p ON p.id = cl.patient_id
                WHERE cl.caregiver_line_user_id = ? AND cl.status = 'active'
                ORDER BY cl.created_at ASC, p.id ASC
                """,
                (line_user_id,),
            ).fetchall():
                profile = _profile_from_row(row)
                found.append(
                    ViewablePatient(id=profile.id, name=profile.display_name, group_name="Direct Care", source="caregiver")
                )

        # Same patient may be reachable through several routes; keep the first.
        seen: set[str] = set()
        unique: List[ViewablePatient] = []
        for patient in found:
            if patient.id in seen:
                continue
            seen.add(patient.id)
            unique.append(patient)
        return unique

    def record_access_within_limit(self, entry: AccessLogEntry, *, limit: int, since: datetime) -> bool:
        with db_conn(self.db_path) as conn:
            # Count and insert under one write lock so concurrent requests cannot both pass.
            conn.execute("BEGIN IMMEDIATE")
            count = conn.execute(
                """
                SELECT COUNT(*) FROM report_access_logs
                WHERE accessed_by_line_user_id = ? AND access_type = ? AND accessed_at >= ?
                """,
                (entry.accessed_by_line_user_id, entry.access_type.value, to_storage_text(since)),
            ).fetchone()[0]
            if count >= limit:
                return False
            conn.execute(
                """
                INSERT INTO report_access_logs (
                    id, patient_id, accessed_by_line_user_id, access_type,
                    date_from, date_to, ip_address, user_agent, accessed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid4()),
                    entry.patient_id,
                    entry.accessed_by_line_user_id,
                    entry.access_type.value,
                    entry.date_from,
                    entry.date_to,
                    entry.ip_address,
                    entry.user_agent,
                    to_storage_text(entry.accessed_at),
                ),
            )
            return True
