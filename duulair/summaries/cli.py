# -*- coding: utf-8 -*-
"""
Run the daily summary aggregation once.

Usage:
    python -m duulair.summaries.cli
    python -m duulair.summaries.cli --date 2025-01-15
    python -m duulair.summaries.cli --db /path/to/duulair.db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import settings
from ..errors import RequestValidationFailed
from ..localtime import fixed_offset
from ..store import SQLiteDataStore
from .aggregator import DailyAggregator


def build_aggregator(db_path: Path) -> DailyAggregator:
    return DailyAggregator(
        SQLiteDataStore(db_path),
        tz=fixed_offset(settings.tz_offset_hours),
        default_water_goal_ml=settings.default_water_goal_ml,
        concurrency=settings.aggregate_concurrency,
    )


def cmd_aggregate(args: argparse.Namespace) -> int:
    """Aggregate one local day and print the result as JSON."""
    db_path = Path(args.db) if args.db else settings.db_path
    aggregator = build_aggregator(db_path)

    try:
        day = aggregator.resolve_target_date(args.date)
    except RequestValidationFailed as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(aggregator.run(day))
    except Exception as exc:
        logging.getLogger(__name__).exception("Daily aggregation failed")
        print(json.dumps({"success": False, "error": str(exc) or type(exc).__name__}))
        return 1

    print(json.dumps(result.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Aggregate daily patient summaries")
    parser.add_argument("--date", help="Local day to aggregate (YYYY-MM-DD), defaults to yesterday")
    parser.add_argument("--db", help="Path to the SQLite database")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return cmd_aggregate(args)


if __name__ == "__main__":
    sys.exit(main())
