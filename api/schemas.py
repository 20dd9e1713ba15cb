"""Pydantic schemas for the fit diagnostic API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from assessment import FitAssessment
from fit.models import CamelModel, FitReport, Stage, Verdict
from roi import DiagnosticContext, RoiReport


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class StartReq(CamelModel):
    text: Optional[str] = Field(default=None, max_length=50000)
    jd_text: Optional[str] = Field(default=None, max_length=50000)

    @property
    def context_text(self) -> str:
        return (self.text or "").strip() or (self.jd_text or "").strip()


class MessageReq(CamelModel):
    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1, max_length=20000)

    @model_validator(mode="after")
    def _non_blank(self) -> "MessageReq":
        if not self.message.strip():
            raise ValueError("message must not be blank")
        return self


class LeadReq(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    name: Optional[str] = Field(default=None, max_length=200)
    business_name: str
    industry: str
    top_recommendation: str


class TurnResp(CamelModel):
    session_id: str
    stage: Stage
    role: Literal["assistant"] = "assistant"
    content: str
    verdict: Optional[Verdict] = None
    report: Optional[FitReport] = None


class LeadResp(CamelModel):
    success: Literal[True] = True


class ResearchReq(CamelModel):
    business_name: str = Field(min_length=1, max_length=200)
    industry: str = Field(min_length=1, max_length=100)


class QuestionsReq(ResearchReq):
    research_context: str = ""
    software_stack: List[str] = Field(default_factory=list, max_length=50)


class RoiReportReq(CamelModel):
    diagnostic_context: DiagnosticContext


class ResearchResp(CamelModel):
    research_context: str


class QuestionsResp(CamelModel):
    questions: List[str]


class RoiReportResp(CamelModel):
    stage: Literal["REPORT"] = "REPORT"
    role: Literal["assistant"] = "assistant"
    content: str
    report: RoiReport


class AssessmentResp(CamelModel):
    success: Literal[True] = True
    data: FitAssessment


class HealthResp(CamelModel):
    status: Literal["ok"] = "ok"
    sessions: int = 0
