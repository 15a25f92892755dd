# -*- coding: utf-8 -*-

from __future__ import annotations

import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from datetime import date, datetime, timezone
from pathlib import Path

from fastapi.testclient import TestClient

from seed_data import add_activity, add_patient, add_water, utc

NOW = datetime(2025, 1, 15, 5, 0, tzinfo=timezone.utc)
SECRET = "cron-s3cret"


class _BrokenStore:
    def list_patient_ids(self):
        raise RuntimeError("db down")


class TestAggregateApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="duulair-test-"))
        data_root = cls._tmp / "data"
        cls.db_path = data_root / "duulair.db"
        os.environ["DUULAIR_DATA_ROOT"] = str(data_root)
        os.environ["DUULAIR_DB_PATH"] = str(cls.db_path)
        os.environ["DUULAIR_CRON_SECRET"] = SECRET

        # Ensure settings/app reflect the env vars above.
        for name in list(sys.modules.keys()):
            if name.startswith("duulair."):
                sys.modules.pop(name, None)

        from duulair.api import create_app  # noqa: WPS433 (import inside test for env control)

        cls.create_app = staticmethod(create_app)
        cls.app = create_app(clock=lambda: NOW)
        cls.client = TestClient(cls.app)

        add_patient(cls.db_path, "P1", nickname="Somchai")
        add_patient(cls.db_path, "P2", nickname="Malee")
        add_activity(cls.db_path, "P1", "blood_pressure", utc(2025, 1, 14, 2, 0), value="142/91 pulse 80")
        add_water(cls.db_path, "P1", 400, utc(2025, 1, 14, 3, 0))
        add_activity(cls.db_path, "P1", "blood_pressure", utc(2025, 1, 10, 2, 0), value="118/75")

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        os.environ.pop("DUULAIR_CRON_SECRET", None)
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _post(self, **kwargs):
        headers = kwargs.pop("headers", {"Authorization": f"Bearer {SECRET}"})
        return self.client.post("/api/aggregate-daily-summaries", headers=headers, **kwargs)

    def test_requires_cron_secret(self) -> None:
        resp = self._post(headers={}, json={"date": "2025-01-14"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Unauthorized"})

        resp = self._post(headers={"X-Cron-Secret": "wrong"}, json={"date": "2025-01-14"})
        self.assertEqual(resp.status_code, 401)

        resp = self._post(headers={"X-Cron-Secret": SECRET}, json={"date": "2025-01-14"})
        self.assertEqual(resp.status_code, 200)

    def test_explicit_date(self) -> None:
        resp = self._post(json={"date": "2025-01-10"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True, "date": "2025-01-10", "processed": 2, "errors": 0})

        store = self.app.state.store
        day = date(2025, 1, 10)
        (row,) = store.list_daily_summaries("P1", day, day)
        self.assertEqual(row.bp_systolic_avg, 118)
        self.assertEqual(row.bp_status, "normal")

    def test_missing_or_malformed_body_means_yesterday(self) -> None:
        resp = self._post()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["date"], "2025-01-14")

        resp = self._post(content=b"not json", headers={"Authorization": f"Bearer {SECRET}", "Content-Type": "application/json"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["date"], "2025-01-14")

        resp = self._post(json={"something": "else"})
        self.assertEqual(resp.json()["date"], "2025-01-14")

        store = self.app.state.store
        day = date(2025, 1, 14)
        (row,) = store.list_daily_summaries("P1", day, day)
        self.assertEqual((row.bp_systolic_avg, row.bp_diastolic_avg, row.heart_rate_avg), (142, 91, 80))
        self.assertEqual(row.bp_status, "high")
        self.assertEqual(row.water_intake_ml, 400)
        (other,) = store.list_daily_summaries("P2", day, day)
        self.assertFalse(other.has_data)

    def test_invalid_date(self) -> None:
        resp = self._post(json={"date": "15-01-2025"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid date format. Use YYYY-MM-DD"})

    def test_fatal_listing_failure(self) -> None:
        app = self.create_app(store=_BrokenStore(), clock=lambda: NOW, cron_secret="")
        with TestClient(app) as client:
            resp = client.post("/api/aggregate-daily-summaries", json={})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "db down"})


class TestAggregateCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="duulair-cli-"))
        self.db_path = self._tmp / "duulair.db"

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def test_runs_one_day(self) -> None:
        from duulair.store import SQLiteDataStore
        from duulair.summaries.cli import main

        SQLiteDataStore(self.db_path)
        add_patient(self.db_path, "P1", nickname="Somchai")
        add_water(self.db_path, "P1", 600, utc(2025, 1, 14, 3, 0))

        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--date", "2025-01-14", "--db", str(self.db_path)])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out.getvalue()), {"success": True, "date": "2025-01-14", "processed": 1, "errors": 0})

    def test_invalid_date_exit_code(self) -> None:
        from duulair.summaries.cli import main

        err = io.StringIO()
        with redirect_stderr(err):
            code = main(["--date", "yesterday", "--db", str(self.db_path)])
        self.assertEqual(code, 2)
        self.assertIn("Invalid date format", err.getvalue())


if __name__ == "__main__":
    unittest.main()
