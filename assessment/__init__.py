from __future__ import annotations  # Re-export assessment public API

from .assessment import (  # noqa: F401
    FitAssessment,
    FitAssessmentInput,
    RoleSignals,
    generate_fit_assessment,
)

__all__ = [
    "FitAssessment",
    "FitAssessmentInput",
    "RoleSignals",
    "generate_fit_assessment",
]
