# -*- coding: utf-8 -*-
"""
Duulair reports API

Daily patient summary aggregation and the caregiver report endpoints.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.line import LineTokenVerifier, TokenVerifier
from .config import settings
from .errors import ServiceError
from .localtime import fixed_offset
from .reports.api import router as reports_router
from .reports.pdf_generator import PDFReportGenerator
from .reports.service import ReportService
from .store import DataStore, SQLiteDataStore
from .summaries.aggregator import DailyAggregator
from .summaries.api import router as summaries_router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError):
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Not found"
        return _error_response(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(400, str(message))


def create_app(
    store: Optional[DataStore] = None,
    token_verifier: Optional[TokenVerifier] = None,
    clock: Optional[Callable[[], datetime]] = None,
    cron_secret: Optional[str] = None,
) -> FastAPI:
    """Build the FastAPI app; tests inject their own store, verifier and clock."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Duulair Reports",
        description="Daily patient summaries and caregiver health reports",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    tz = fixed_offset(settings.tz_offset_hours)
    store = store if store is not None else SQLiteDataStore(settings.db_path)

    app.state.store = store
    app.state.token_verifier = token_verifier or LineTokenVerifier(
        settings.line_profile_url, timeout=settings.line_verify_timeout
    )
    app.state.cron_secret = cron_secret if cron_secret is not None else settings.cron_secret
    app.state.report_service = ReportService(
        store,
        tz=tz,
        max_range_days=settings.report_max_range_days,
        rate_window_minutes=settings.rate_window_minutes,
        rate_limits=settings.rate_limits,
        default_water_goal_ml=settings.default_water_goal_ml,
        clock=clock,
        pdf_generator=PDFReportGenerator(font_path=settings.pdf_font_path),
    )
    app.state.aggregator = DailyAggregator(
        store,
        tz=tz,
        default_water_goal_ml=settings.default_water_goal_ml,
        concurrency=settings.aggregate_concurrency,
        clock=clock,
    )

    _install_exception_handlers(app)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    app.include_router(summaries_router)
    app.include_router(reports_router)

    logger.info("Duulair reports API ready (db=%s)", getattr(store, "db_path", "custom"))
    return app


app = create_app()


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("DUULAIR_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("DUULAIR_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("duulair.api:app", host=host, port=port, reload=False)
