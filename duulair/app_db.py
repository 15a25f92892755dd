# -*- coding: utf-8 -*-
"""App database: SQLite helpers.

Raw logs, medication schedules, water goals, care links and patient profiles
are owned by the wider application; this service only reads them. It writes
``daily_patient_summaries`` (aggregator) and ``report_access_logs`` (reports).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        # Aggregator threads read while another thread upserts.
        cur.execute("PRAGMA journal_mode = WAL;")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS patient_profiles (
                id TEXT PRIMARY KEY,
                line_user_id TEXT,
                first_name TEXT,
                last_name TEXT,
                nickname TEXT,
                birth_date TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_patient_profiles_line_user ON patient_profiles(line_user_id);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS caregiver_links (
                caregiver_line_user_id TEXT NOT NULL,
                patient_id TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL,
                PRIMARY KEY (caregiver_line_user_id, patient_id),
                FOREIGN KEY(patient_id) REFERENCES patient_profiles(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS care_groups (
                id TEXT PRIMARY KEY,
                group_name TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS group_members (
                group_id TEXT NOT NULL,
                line_user_id TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                PRIMARY KEY (group_id, line_user_id),
                FOREIGN KEY(group_id) REFERENCES care_groups(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS group_patients (
                group_id TEXT NOT NULL,
                patient_id TEXT NOT NULL,
                PRIMARY KEY (group_id, patient_id),
                FOREIGN KEY(group_id) REFERENCES care_groups(id) ON DELETE CASCADE,
                FOREIGN KEY(patient_id) REFERENCES patient_profiles(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS activity_logs (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                task_type TEXT NOT NULL,
                value TEXT,
                metadata_json TEXT,
                timestamp TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_activity_logs_patient_ts ON activity_logs(patient_id, timestamp);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS water_intake_logs (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                amount_ml INTEGER,
                logged_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_water_logs_patient_logged ON water_intake_logs(patient_id, logged_at);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS water_intake_goals (
                patient_id TEXT NOT NULL,
                daily_goal_ml INTEGER NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                updated_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS patient_medications (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                name TEXT,
                times_json TEXT,
                frequency_type TEXT,
                days_of_week_json TEXT,
                is_active INTEGER NOT NULL DEFAULT 1
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS daily_patient_summaries (
                patient_id TEXT NOT NULL,
                summary_date TEXT NOT NULL,
                bp_readings_count INTEGER NOT NULL DEFAULT 0,
                bp_systolic_avg INTEGER,
                bp_systolic_min INTEGER,
                bp_systolic_max INTEGER,
                bp_diastolic_avg INTEGER,
                bp_diastolic_min INTEGER,
                bp_diastolic_max INTEGER,
                bp_status TEXT,
                heart_rate_avg INTEGER,
                heart_rate_min INTEGER,
                heart_rate_max INTEGER,
                medications_scheduled INTEGER NOT NULL DEFAULT 0,
                medications_taken INTEGER NOT NULL DEFAULT 0,
                medications_missed INTEGER NOT NULL DEFAULT 0,
                medication_compliance_percent REAL,
                water_intake_ml INTEGER NOT NULL DEFAULT 0,
                water_goal_ml INTEGER NOT NULL DEFAULT 0,
                water_compliance_percent REAL,
                activities_count INTEGER NOT NULL DEFAULT 0,
                exercise_minutes INTEGER NOT NULL DEFAULT 0,
                mood_avg REAL,
                has_data INTEGER NOT NULL DEFAULT 0,
                aggregated_at TEXT NOT NULL,
                PRIMARY KEY (patient_id, summary_date)
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS report_access_logs (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                accessed_by_line_user_id TEXT NOT NULL,
                access_type TEXT NOT NULL,
                date_from TEXT NOT NULL,
                date_to TEXT NOT NULL,
                ip_address TEXT,
                user_agent TEXT,
                accessed_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_report_access_user_type_at ON report_access_logs(accessed_by_line_user_id, access_type, accessed_at);"
        )
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
