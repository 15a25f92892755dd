# -*- coding: utf-8 -*-
"""
PDF report generator

Renders the patient health report (period summary + daily table) as a PDF.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import PdfReportData

logger = logging.getLogger(__name__)

_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/tlwg/Garuda.ttf",
    "/usr/share/fonts/truetype/tlwg/Loma.ttf",
    "/usr/share/fonts/truetype/noto/NotoSansThai-Regular.ttf",
    "/usr/share/fonts/opentype/noto/NotoSansThai-Regular.ttf",
    "C:/Windows/Fonts/tahoma.ttf",
    "/Library/Fonts/Thonburi.ttf",
)

_STATUS_COLORS = {
    "normal": colors.HexColor("#27ae60"),
    "elevated": colors.HexColor("#f39c12"),
    "high": colors.HexColor("#e67e22"),
    "crisis": colors.HexColor("#e74c3c"),
}


def _dash(value: Optional[object], suffix: str = "") -> str:
    return "-" if value is None else f"{value}{suffix}"


class PDFReportGenerator:
    """PDF report generator"""

    def __init__(self, font_path: Optional[str] = None):
        """
        Args:
            font_path: TTF font able to render Thai patient names
        """
        self.font_path = font_path
        self._register_fonts()
        self._setup_styles()

    def _register_fonts(self) -> None:
        if self.font_path and not Path(self.font_path).exists():
            logger.warning("Configured PDF font %s not found, falling back", self.font_path)
        for path in (self.font_path, *_FONT_CANDIDATES):
            if path and Path(path).exists():
                try:
                    pdfmetrics.registerFont(TTFont("ReportFont", path))
                    self.font_name = "ReportFont"
                    return
                except Exception as exc:
                    logger.warning("Could not register PDF font %s: %s", path, exc)
                    continue
        self.font_name = "Helvetica"

    def _setup_styles(self) -> None:
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name="ReportTitle",
            fontName=self.font_name,
            fontSize=18,
            leading=24,
            alignment=1,
            spaceAfter=12,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportHeading",
            fontName=self.font_name,
            fontSize=13,
            leading=17,
            spaceBefore=12,
            spaceAfter=6,
            textColor=colors.HexColor("#2c3e50"),
        ))
        self.styles.add(ParagraphStyle(
            name="ReportSmall",
            fontName=self.font_name,
            fontSize=8,
            leading=10,
            textColor=colors.grey,
        ))

    def generate_report(self, report: PdfReportData, output_path: Optional[str] = None) -> bytes:
        """
        Build the PDF.

        Args:
            report: report data
            output_path: also write the PDF here (optional)

        Returns:
            bytes: PDF content
        """
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=2 * cm,
            leftMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
            title=f"Health Report - {report.patient_name}",
        )

        story: List = []
        story.append(Paragraph("Health Report", self.styles["ReportTitle"]))
        story.extend(self._build_patient_section(report))
        story.extend(self._build_summary_section(report))
        story.extend(self._build_daily_section(report))
        story.append(Spacer(1, 12))
        story.append(Paragraph(report.disclaimer, self.styles["ReportSmall"]))

        doc.build(story)
        pdf_content = buffer.getvalue()
        buffer.close()

        if output_path:
            with open(output_path, "wb") as f:
                f.write(pdf_content)

        return pdf_content

    def _info_table(self, data: List[List[str]], col_widths: List[float]) -> Table:
        table = Table(data, colWidths=col_widths)
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), self.font_name),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("TEXTCOLOR", (0, 0), (0, -1), colors.grey),
            ("TEXTCOLOR", (2, 0), (2, -1), colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
        ]))
        return table

    def _build_patient_section(self, report: PdfReportData) -> List:
        elements: List = []
        elements.append(Paragraph("Patient", self.styles["ReportHeading"]))
        elements.append(HRFlowable(width="100%", thickness=1, color=colors.grey))
        data = [
            ["Name", report.patient_name, "Birth date", _dash(report.birth_date)],
            ["Period", f"{report.date_from} to {report.date_to}", "Days with data",
             f"{report.days_with_data} / {report.total_days}"],
            ["Generated", report.generated_at.strftime("%Y-%m-%d %H:%M"), "Generated by", report.generated_by],
        ]
        elements.append(self._info_table(data, [3 * cm, 5.5 * cm, 3 * cm, 5.5 * cm]))
        elements.append(Spacer(1, 8))
        return elements

    def _build_summary_section(self, report: PdfReportData) -> List:
        elements: List = []
        elements.append(Paragraph("Summary", self.styles["ReportHeading"]))
        elements.append(HRFlowable(width="100%", thickness=1, color=colors.grey))

        bp_avg = "-"
        if report.avg_systolic is not None and report.avg_diastolic is not None:
            bp_avg = f"{report.avg_systolic}/{report.avg_diastolic} mmHg"
        data = [
            ["Blood pressure (avg)", bp_avg, "Status", _dash(report.bp_status)],
            ["Systolic range", f"{_dash(report.min_systolic)} - {_dash(report.max_systolic)}", "", ""],
            ["Medications taken", f"{report.meds_taken} / {report.meds_scheduled}",
             "Compliance", _dash(report.meds_compliance_percent, "%")],
            ["Water total", f"{report.water_total_ml} ml", "Daily avg", f"{report.water_avg_daily_ml} ml"],
        ]
        table = self._info_table(data, [4 * cm, 4.5 * cm, 3 * cm, 5.5 * cm])
        status_color = _STATUS_COLORS.get(report.bp_status or "")
        if status_color is not None:
            table.setStyle(TableStyle([("TEXTCOLOR", (3, 0), (3, 0), status_color)]))
        elements.append(table)
        elements.append(Spacer(1, 8))
        return elements

    def _build_daily_section(self, report: PdfReportData) -> List:
        elements: List = []
        elements.append(Paragraph("Daily data", self.styles["ReportHeading"]))
        elements.append(HRFlowable(width="100%", thickness=1, color=colors.grey))
        if not report.days:
            elements.append(Paragraph("No data recorded for this period.", self.styles["ReportSmall"]))
            return elements

        data = [["Date", "BP", "Meds", "Water (ml)", "Activities"]]
        for day in report.days:
            data.append([day.date, day.bp, day.meds, str(day.water), str(day.activities)])

        table = Table(data, colWidths=[3.5 * cm, 3.5 * cm, 3 * cm, 3.5 * cm, 3 * cm], repeatRows=1)
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), self.font_name),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#ecf0f1")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#2c3e50")),
            ("ALIGN", (1, 0), (-1, -1), "CENTER"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(table)
        return elements
