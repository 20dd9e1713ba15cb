from __future__ import annotations  # One-shot fit assessment of a pasted job or workflow description

from textwrap import dedent
from typing import List

from pydantic import Field, field_validator

from config import LlmRoute
from fit.interpreter import parse_json_payload
from fit.models import CamelModel
from fit.prompts import OPERATOR_PROFILE, clamp_text
from llm_gateway import Prompt, complete
from observability import log_event, span


class FitAssessmentInput(CamelModel):  # Request payload from UI
    input_text: str = Field(min_length=1, max_length=10000)

    @field_validator("input_text")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Input text is required")
        return stripped


class RoleSignals(CamelModel):  # Role characteristics read from the input
    seniority: str
    domain: str
    primary_tools: List[str]
    core_responsibilities: List[str]


class FitAssessment(CamelModel):  # Structured assessment returned to UI
    summary: str = Field(min_length=1)
    fit_score: float = Field(ge=0, le=100)
    strengths: List[str] = Field(min_length=1)
    gaps: List[str]
    risks: List[str]
    recommended_next_steps: List[str] = Field(min_length=1)
    keywords: List[str]
    role_signals: RoleSignals


SYSTEM_PROMPT = dedent(
    """
    You are an expert career analyst who turns unstructured job descriptions and workflow requirements
    into structured fit analysis.

    Your task is to analyze the provided text (job description, workflow description, or requirements)
    and produce a structured assessment of Calum's fit.

    Rules:
    1. Return only valid JSON, with no markdown and no commentary outside the JSON
    2. Match the schema exactly
    3. Be honest and specific; reference actual details from the input
    4. Keep the fit score realistic (70-85 is a good fit, 50-70 moderate, below 50 weak)
    5. Every array holds substantive, specific content rather than generic filler
    """
).strip()


def generate_fit_assessment(input_text: str, *, route: LlmRoute, limit: int = 10000) -> FitAssessment:
    """Score Calum's fit against ``input_text`` with a single completion call.

    Raises:
        LlmTimeoutError: If the completion call exceeds the route timeout.
        LlmGatewayError: If the completion call fails.
        InterpretationError: If the reply holds no JSON object matching the schema.
    """

    prompt = Prompt(
        system="\n\n".join([SYSTEM_PROMPT, OPERATOR_PROFILE]),
        messages=[{"role": "user", "content": _build_task(clamp_text(input_text, limit))}],
    )
    with span(None, "assessment", model=route.model, chars=len(input_text)):
        raw = complete(prompt, cfg=route)
    result = parse_json_payload(raw, FitAssessment)
    log_event("assessment", None, outcome="ok", score=result.fit_score)
    return result


def _build_task(input_text: str) -> str:  # Build task prompt for LLM
    return "\n".join(
        [
            "Analyze the following input and produce a structured fit assessment:",
            '"""',
            input_text,
            '"""',
            "",
            "Return only valid JSON matching this exact schema:",
            dedent(
                """
                {
                  "summary": "2-4 sentence summary of the fit analysis",
                  "fitScore": 0-100,
                  "strengths": ["3-8 specific strengths or alignment points"],
                  "gaps": ["3-10 specific gaps or areas of mismatch"],
                  "risks": ["2-8 potential risks or challenges"],
                  "recommendedNextSteps": ["3-8 specific actionable next steps"],
                  "keywords": ["8-20 relevant keywords extracted from the input"],
                  "roleSignals": {
                    "seniority": "Entry, Mid, Senior, Lead, Manager, or Director",
                    "domain": "Engineering, Operations, Data, Product, ...",
                    "primaryTools": ["main tools or technologies mentioned"],
                    "coreResponsibilities": ["3-6 main responsibilities"]
                  }
                }
                """
            ).strip(),
            "Be specific and reference actual content from the input. Do not use generic filler text.",
            "Return only the JSON object without markdown fences, text, or commentary.",
        ]
    )


__all__ = ["FitAssessment", "FitAssessmentInput", "RoleSignals", "generate_fit_assessment"]
