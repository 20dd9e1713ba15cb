from __future__ import annotations  # Re-export ROI wizard public API

from .roi import (  # noqa: F401
    FALLBACK_PAIN_QUESTIONS,
    REPORT_CONTENT,
    SOFTWARE_STACK_CATEGORIES,
    DiagnosticContext,
    PainAnswer,
    RoiReport,
    fallback_roi_report,
    generate_pain_questions,
    generate_roi_report,
    research_business,
)

__all__ = [
    "DiagnosticContext",
    "FALLBACK_PAIN_QUESTIONS",
    "PainAnswer",
    "REPORT_CONTENT",
    "RoiReport",
    "SOFTWARE_STACK_CATEGORIES",
    "fallback_roi_report",
    "generate_pain_questions",
    "generate_roi_report",
    "research_business",
]
