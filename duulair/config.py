from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    """Centralized configuration for the Duulair reports backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("DUULAIR_DATA_ROOT") or data_root_default
        ).expanduser()
        self.db_path: Path = Path(
            os.environ.get("DUULAIR_DB_PATH") or (self.data_root / "duulair.db")
        ).expanduser()

        # Reports and daily summaries are bucketed by Thai local days.
        self.tz_offset_hours: int = int(os.environ.get("DUULAIR_TZ_OFFSET_HOURS") or "7")
        self.default_water_goal_ml: int = int(
            os.environ.get("DUULAIR_DEFAULT_WATER_GOAL_ML") or "2000"
        )
        self.aggregate_concurrency: int = int(
            os.environ.get("DUULAIR_AGGREGATE_CONCURRENCY") or "4"
        )
        # When set, the aggregation trigger requires this shared secret.
        self.cron_secret: Optional[str] = os.environ.get("DUULAIR_CRON_SECRET") or None

        self.report_max_range_days: int = int(
            os.environ.get("DUULAIR_REPORT_MAX_RANGE_DAYS") or "90"
        )
        self.rate_window_minutes: int = int(
            os.environ.get("DUULAIR_RATE_WINDOW_MINUTES") or "60"
        )
        self.rate_limit_view: int = int(os.environ.get("DUULAIR_RATE_LIMIT_VIEW") or "100")
        self.rate_limit_export_csv: int = int(
            os.environ.get("DUULAIR_RATE_LIMIT_EXPORT_CSV") or "10"
        )
        self.rate_limit_export_pdf: int = int(
            os.environ.get("DUULAIR_RATE_LIMIT_EXPORT_PDF") or "10"
        )

        self.line_profile_url: str = os.environ.get(
            "LINE_PROFILE_URL", "https://api.line.me/v2/profile"
        )
        self.line_verify_timeout: float = float(os.environ.get("LINE_VERIFY_TIMEOUT") or "10")

        self.pdf_font_path: Optional[str] = os.environ.get("DUULAIR_PDF_FONT") or None
        self.log_level: str = (os.environ.get("DUULAIR_LOG_LEVEL") or "INFO").upper()

        cors = os.environ.get("CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]

    @property
    def rate_limits(self) -> dict[str, int]:
        return {
            "view": self.rate_limit_view,
            "export_csv": self.rate_limit_export_csv,
            "export_pdf": self.rate_limit_export_pdf,
        }


settings = Settings()
