# -*- coding: utf-8 -*-
"""Blood pressure reading extraction and daily statistics.

A BP log carries either structured metadata (``systolic``/``diastolic``/
``heart_rate``) or a free-text value such as ``"135/85 pulse 72"``. Structured
fields win; text is the fallback; anything else is skipped.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Mapping, Optional

from .models import BPReading, BPStats, BPStatus

_BP_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")
_HR_PATTERN = re.compile(r"(?:pulse|hr|heart[_\s]?rate)[:\s]*(\d+)", re.IGNORECASE)


def round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _reading_from_metadata(metadata: Optional[Mapping[str, Any]]) -> Optional[BPReading]:
    if not metadata:
        return None
    systolic = _as_number(metadata.get("systolic"))
    diastolic = _as_number(metadata.get("diastolic"))
    if systolic is None or diastolic is None:
        return None
    return BPReading(
        systolic=systolic,
        diastolic=diastolic,
        heart_rate=_as_number(metadata.get("heart_rate")),
    )


def _reading_from_text(value: Optional[str]) -> Optional[BPReading]:
    if not value:
        return None
    match = _BP_PATTERN.search(value)
    if not match:
        return None
    hr_match = _HR_PATTERN.search(value)
    return BPReading(
        systolic=float(match.group(1)),
        diastolic=float(match.group(2)),
        heart_rate=float(hr_match.group(1)) if hr_match else None,
    )


def parse_bp_reading(value: Optional[str], metadata: Optional[Mapping[str, Any]]) -> Optional[BPReading]:
    return _reading_from_metadata(metadata) or _reading_from_text(value)


def classify_bp_status(systolic_avg: Optional[float], diastolic_avg: Optional[float]) -> Optional[BPStatus]:
    if systolic_avg is None or diastolic_avg is None:
        return None
    if systolic_avg >= 180 or diastolic_avg >= 120:
        return BPStatus.CRISIS
    if systolic_avg >= 140 or diastolic_avg >= 90:
        return BPStatus.HIGH
    if systolic_avg >= 130 or diastolic_avg >= 80:
        return BPStatus.ELEVATED
    return BPStatus.NORMAL


def _avg(values: List[float]) -> int:
    return int(round_half_up(sum(values) / len(values)))


def calculate_bp_stats(readings: Iterable[BPReading]) -> BPStats:
    readings = list(readings)
    if not readings:
        return BPStats()

    systolics = [r.systolic for r in readings]
    diastolics = [r.diastolic for r in readings]
    # A heart rate of 0 is treated as "not recorded".
    heart_rates = [r.heart_rate for r in readings if r.heart_rate]

    systolic_avg = _avg(systolics)
    diastolic_avg = _avg(diastolics)

    return BPStats(
        systolic_avg=systolic_avg,
        systolic_min=int(round_half_up(min(systolics))),
        systolic_max=int(round_half_up(max(systolics))),
        diastolic_avg=diastolic_avg,
        diastolic_min=int(round_half_up(min(diastolics))),
        diastolic_max=int(round_half_up(max(diastolics))),
        heart_rate_avg=_avg(heart_rates) if heart_rates else None,
        heart_rate_min=int(round_half_up(min(heart_rates))) if heart_rates else None,
        heart_rate_max=int(round_half_up(max(heart_rates))) if heart_rates else None,
        status=classify_bp_status(systolic_avg, diastolic_avg),
    )
