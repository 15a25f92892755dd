# -*- coding: utf-8 -*-
"""Daily summaries domain: aggregation trigger endpoint."""

from __future__ import annotations

import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..errors import Unauthenticated
from .aggregator import DailyAggregator
from .models import AggregationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Daily Summaries"])


def _presented_secret(request: Request) -> Optional[str]:
    header = request.headers.get("x-cron-secret")
    if header:
        return header.strip()
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return None


def _check_cron_secret(request: Request) -> None:
    expected: Optional[str] = request.app.state.cron_secret
    if not expected:
        return
    presented = _presented_secret(request)
    if not presented or not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        raise Unauthenticated("Unauthorized")


async def _parse_request(request: Request) -> AggregationRequest:
    # Empty or malformed bodies mean "yesterday".
    raw = await request.body()
    if not raw.strip():
        return AggregationRequest()
    try:
        payload = json.loads(raw)
    except ValueError:
        return AggregationRequest()
    if not isinstance(payload, dict):
        return AggregationRequest()
    value = payload.get("date")
    return AggregationRequest(date=value if isinstance(value, str) else None)


@router.post("/aggregate-daily-summaries", summary="Aggregate daily summaries for every patient")
async def aggregate_daily_summaries(request: Request):
    _check_cron_secret(request)
    aggregator: DailyAggregator = request.app.state.aggregator

    body = await _parse_request(request)
    day = aggregator.resolve_target_date(body.date)

    try:
        result = await aggregator.run(day)
    except Exception as exc:
        logger.exception("Daily aggregation failed for %s", day.isoformat())
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc) or type(exc).__name__})

    return result.model_dump(by_alias=True, exclude_none=True)
