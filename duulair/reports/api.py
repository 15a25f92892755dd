# -*- coding: utf-8 -*-
"""Reports domain: API endpoints."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from ..auth.models import LineProfile
from ..auth.security import get_current_profile
from .models import AccessType, PatientsResponse, ReportRange, ReportSummaryResponse
from .service import ReportService

router = APIRouter(prefix="/api/reports", tags=["Reports"])


def _service(request: Request) -> ReportService:
    return request.app.state.report_service


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _open(
    request: Request,
    profile: LineProfile,
    access_type: AccessType,
    patient_id: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str],
) -> ReportRange:
    return _service(request).open_request(
        profile,
        patient_id=patient_id,
        date_from=date_from,
        date_to=date_to,
        access_type=access_type,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def _attachment(filename: str) -> str:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.get("/summary", response_model=ReportSummaryResponse, summary="Health summary for a date range")
def report_summary(
    request: Request,
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    date_from: Optional[str] = Query(default=None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(default=None, alias="to", description="YYYY-MM-DD"),
    profile: LineProfile = Depends(get_current_profile),
):
    report_range = _open(request, profile, AccessType.VIEW, patient_id, date_from, date_to)
    return _service(request).summary(report_range)


@router.get("/export/csv", summary="Daily summaries as CSV")
def export_csv(
    request: Request,
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    date_from: Optional[str] = Query(default=None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(default=None, alias="to", description="YYYY-MM-DD"),
    profile: LineProfile = Depends(get_current_profile),
):
    report_range = _open(request, profile, AccessType.EXPORT_CSV, patient_id, date_from, date_to)
    content, filename = _service(request).export_csv(report_range, profile)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": _attachment(filename)},
    )


@router.get("/export/pdf", summary="Health report as PDF")
def export_pdf(
    request: Request,
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    date_from: Optional[str] = Query(default=None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(default=None, alias="to", description="YYYY-MM-DD"),
    profile: LineProfile = Depends(get_current_profile),
):
    report_range = _open(request, profile, AccessType.EXPORT_PDF, patient_id, date_from, date_to)
    pdf_bytes, filename = _service(request).export_pdf(report_range, profile)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": _attachment(filename)},
    )


@router.get("/patients", response_model=PatientsResponse, summary="Patients the caller may view")
def viewable_patients(request: Request, profile: LineProfile = Depends(get_current_profile)):
    return _service(request).patients(profile)
