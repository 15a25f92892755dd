# -*- coding: utf-8 -*-
"""
Patient health reports
"""

from .pdf_generator import PDFReportGenerator

__all__ = [
    'PDFReportGenerator',
]
