from __future__ import annotations  # Diagnostic session and report models

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Stage = Literal["INTAKE", "NARROWING", "DEEP_DIVE", "REPORT"]
Role = Literal["user", "assistant"]
Verdict = Literal["YES", "NO"]

STAGE_ORDER: tuple[Stage, ...] = ("INTAKE", "NARROWING", "DEEP_DIVE", "REPORT")


def stage_rank(stage: Stage) -> int:  # Position of a stage in the one-way progression
    return STAGE_ORDER.index(stage)


class CamelModel(BaseModel):  # Wire models exchanged with the browser use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FitMessage(BaseModel):  # One transcript entry
    role: Role
    content: str


class TurnReply(CamelModel):  # Next-question reply contract expected from the model
    message: str
    ready_for_report: bool = False
    is_fallback: bool = Field(default=False, exclude=True)


class KeyInsight(BaseModel):
    label: str = ""
    detail: str = ""


class TimelinePhase(BaseModel):
    label: str = ""
    action: str = ""


class Timeline(BaseModel):  # 30/60/90 day plan
    phase1: TimelinePhase = Field(default_factory=TimelinePhase)
    phase2: TimelinePhase = Field(default_factory=TimelinePhase)
    phase3: TimelinePhase = Field(default_factory=TimelinePhase)


class ScoreDimension(BaseModel):  # Operational dimension scored 0-10 before and after
    label: str
    current: float = Field(ge=0.0, le=10.0)
    projected: float = Field(ge=0.0, le=10.0)


class FitReport(CamelModel):  # Terminal structured output of a diagnostic session
    verdict: Verdict
    hero_recommendation: str = ""
    approach_summary: str
    key_insights: List[KeyInsight] = Field(default_factory=list)
    timeline: Timeline = Field(default_factory=Timeline)
    scores: List[ScoreDimension] = Field(default_factory=list)
    fit_signals: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


class Session(BaseModel):  # Ephemeral in-memory record of one diagnostic run
    id: str
    created_at: datetime
    last_active_at: datetime
    context_text: str = ""
    stage: Stage = "INTAKE"
    user_turns: int = Field(default=0, ge=0)
    transcript: List[FitMessage] = Field(default_factory=list)
    verdict: Optional[Verdict] = None
    report: Optional[FitReport] = None
    closing_message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.report is not None

    def add_message(self, role: Role, content: str) -> None:
        self.transcript.append(FitMessage(role=role, content=content))

    def advance_to(self, stage: Stage) -> None:  # Move forward only; earlier stages are ignored
        if stage_rank(stage) > stage_rank(self.stage):
            self.stage = stage


class TurnOutcome(BaseModel):  # Result of one controller invocation returned to transports
    session_id: str
    stage: Stage
    content: str
    verdict: Optional[Verdict] = None
    report: Optional[FitReport] = None
    degraded: bool = False


__all__ = [
    "FitMessage",
    "FitReport",
    "KeyInsight",
    "Role",
    "STAGE_ORDER",
    "ScoreDimension",
    "Session",
    "Stage",
    "Timeline",
    "TimelinePhase",
    "TurnOutcome",
    "TurnReply",
    "Verdict",
    "stage_rank",
]
