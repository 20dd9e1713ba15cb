from __future__ import annotations  # Research, pain-question and ROI report wizard for small businesses

import json
import logging
import math
from textwrap import dedent
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import Field

from config import LlmRoute
from fit.interpreter import extract_json_object
from fit.models import CamelModel
from fit.prompts import NO_FENCES, clamp_text
from llm_gateway import LlmGatewayError, Prompt, complete
from observability import log_event, span


logger = logging.getLogger(__name__)

SOFTWARE_STACK_CATEGORIES: Dict[str, List[str]] = {
    "POS / Booking": ["Square", "Toast", "Mindbody", "Shopify", "OpenTable"],
    "Communication": ["Gmail", "Outlook", "Slack", "WhatsApp Business"],
    "Scheduling": ["Calendly", "Acuity", "Google Calendar"],
    "Accounting": ["QuickBooks", "Wave", "Xero", "FreshBooks"],
    "Inventory / Ops": ["Airtable", "Notion", "Google Sheets", "Excel"],
    "CRM": ["HubSpot", "Salesforce", "Zoho"],
}

INDUSTRY_SPECIFIC_TOOLS: Dict[str, List[str]] = {
    "Healthcare": ["Epic", "Cerner", "Athenahealth", "PioneerRx", "McKesson", "Practice Fusion", "DrChrono"],
    "Hospitality": ["7shifts", "Lightspeed Restaurant", "Resy", "Gusto", "TouchBistro", "Clover"],
    "Trades": ["ServiceTitan", "Jobber", "Housecall Pro", "Procore", "BuilderTrend"],
    "Retail": ["Lightspeed POS", "Clover", "Cin7", "Vend", "NetSuite"],
    "Professional Services": ["Clio", "Timely", "PracticePanther", "MyCase", "Kareo"],
}

INDUSTRY_OPTIONS = ["Hospitality", "Trades", "Retail", "Healthcare", "Professional Services", "Other"]

QUESTION_COUNT = 3
MAX_SECONDARY = 3
QUESTIONS_RESEARCH_CHARS = 2000
REPORT_RESEARCH_CHARS = 3000

FALLBACK_PAIN_QUESTIONS = [
    "Which of these tools causes you the most manual re-entry or copy-paste work?",
    "How many hours per week do you estimate your team spends on repetitive admin tasks?",
    "What's the one thing you wish just 'happened automatically'?",
]

DEFAULT_NEXT_STEP = "Book a 30-minute call to confirm these numbers with your actual workflow data."
REPORT_CONTENT = "Here's your personalized automation analysis."


class PainAnswer(CamelModel):
    question: str
    answer: str


class DiagnosticContext(CamelModel):  # Everything gathered by the wizard before the report
    business_name: str = Field(min_length=1, max_length=200)
    industry: str = Field(min_length=1, max_length=100)
    research_context: str = ""
    software_stack: List[str] = Field(default_factory=list)
    pain_answers: List[PainAnswer] = Field(default_factory=list)


class Opportunity(CamelModel):
    title: str
    description: str


class SecondaryOpportunity(Opportunity):
    time_saved_hours_per_week: Optional[float] = None


class EstimatedImpact(CamelModel):
    time_saved_hours_per_week: float = Field(ge=0)
    annual_value: int = Field(ge=0)
    implementation_cost: int = Field(ge=0)
    payback_months: float = Field(ge=0)


class RoiReport(CamelModel):
    business_name: str
    industry: str
    top_opportunity: Opportunity
    estimated_impact: EstimatedImpact
    secondary_opportunities: List[SecondaryOpportunity] = Field(default_factory=list)
    recommended_next_step: str


RESEARCH_PROMPT = dedent(
    """
    You are a business research analyst specializing in small and medium businesses. Given a business name
    and industry, produce a concise operational intelligence brief.

    Focus on:
    1. The 3-5 most common operational pain points in this specific industry
    2. Typical software tools used in this industry and their common integration challenges
    3. Average hourly labor cost range for admin/operations staff in this industry ($XX-$XX/hr)
    4. The most impactful automation opportunities that exist today using tools like Make.com, Zapier, or custom integrations
    5. Industry-specific workflow bottlenecks that waste the most time

    Be specific and factual. Reference real tools and real workflows. 600 words max. No fluff, no disclaimers.
    """
).strip()

QUESTIONS_PROMPT = dedent(
    """
    You are a business diagnostic specialist. Generate exactly 3 targeted discovery questions for a business diagnostic.

    Rules:
    - Each question is 1 sentence in a conversational tone
    - Questions are specific to this business's industry and tools, never generic
    - If specific software tools are listed, at least 1 question references them by name
    - Focus on workflow pain points, time waste, manual data entry and automation opportunities
    - Do not ask about budget or timeline
    - Ask open-ended questions that get them describing their workflows, never yes/no questions

    Return only a valid JSON array of exactly 3 strings, for example:
    ["Question 1?", "Question 2?", "Question 3?"]
    """
).strip()

REPORT_PROMPT = dedent(
    """
    You are a business automation consultant producing a specific ROI analysis from diagnostic data.
    Identify the top automation opportunity and produce grounded, realistic numbers.

    ROI calculation rules:
    - Use the hours per week mentioned in the answers as the baseline
    - Estimate hourly cost at $25-45/hr depending on the industry (use the research for guidance)
    - Annual value = hours saved per week * hourly cost * 52
    - Implementation cost is realistic: $2,000-$15,000 for most small business automations
    - Payback period = implementation cost / monthly savings
    - Be conservative; underestimating savings beats overpromising
    - Round dollar amounts to the nearest $100

    Recommendation rules:
    - The top opportunity references specific tools from their software stack
    - Explain in plain language how the tools would connect
    - Secondary opportunities are distinct from the primary one
    - The recommended next step is a clear, specific call to action

    Language rules:
    - Plain language a non-technical business owner understands
    - No jargon such as "RAG", "pipeline", "API" or "webhook" in the output
    - Describe outcomes, not technology
    """
).strip()

REPORT_SCHEMA = dedent(
    """
    {
      "businessName": "...",
      "industry": "...",
      "topOpportunity": {"title": "Short name for the automation", "description": "2-3 sentences"},
      "estimatedImpact": {
        "timeSavedHoursPerWeek": <number>,
        "annualValue": <dollars>,
        "implementationCost": <dollars>,
        "paybackMonths": <number>
      },
      "secondaryOpportunities": [{"title": "...", "description": "...", "timeSavedHoursPerWeek": <number>}],
      "recommendedNextStep": "A specific call to action"
    }
    """
).strip()


def research_business(business_name: str, industry: str, *, route: LlmRoute) -> str:
    """Return a plain-text operational brief for the business's industry.

    Raises:
        LlmGatewayError: If the completion call fails.
    """

    prompt = Prompt(
        system=RESEARCH_PROMPT,
        messages=[{"role": "user", "content": f"Business: {business_name}\nIndustry: {industry}"}],
    )
    with span(None, "roi.research", model=route.model, industry=industry):
        brief = complete(prompt, cfg=route).strip()
    log_event("roi.research", None, industry=industry, chars=len(brief))
    return brief


def generate_pain_questions(
    business_name: str,
    industry: str,
    research_context: str,
    software_stack: Sequence[str],
    *,
    route: LlmRoute,
) -> List[str]:
    """Return exactly three discovery questions, falling back to generic ones on unusable output.

    Raises:
        LlmGatewayError: If the completion call fails.
    """

    content = "\n".join(
        [
            f"Business: {business_name}",
            f"Industry: {industry}",
            f"Software Stack: {_stack_list(software_stack, 'no specific tools selected')}",
            "",
            "Industry Research Context:",
            clamp_text(research_context, QUESTIONS_RESEARCH_CHARS),
        ]
    )
    prompt = Prompt(system=QUESTIONS_PROMPT, messages=[{"role": "user", "content": content}])
    with span(None, "roi.questions", model=route.model, industry=industry):
        raw = complete(prompt, cfg=route)
    questions = interpret_questions(raw)
    log_event("roi.questions", None, industry=industry, outcome="model" if questions is not FALLBACK_PAIN_QUESTIONS else "fallback")
    return list(questions)


def generate_roi_report(context: DiagnosticContext, *, route: LlmRoute) -> RoiReport:
    """Build the ROI report; any upstream or parse failure yields :func:`fallback_roi_report`."""

    prompt = Prompt(
        system=REPORT_PROMPT,
        messages=[{"role": "user", "content": _report_task(context)}],
    )
    with span(None, "roi.report", model=route.model, industry=context.industry) as outcome:
        try:
            raw: Optional[str] = complete(prompt, cfg=route)
        except LlmGatewayError as exc:
            outcome["outcome"] = "upstream_error"
            logger.warning("ROI report call failed, using fallback: %s", exc)
            raw = None
    report = coerce_roi_report(extract_json_object(raw), context)
    if report is None:
        logger.warning("Unusable ROI report output, using fallback report")
        report = fallback_roi_report(context.business_name, context.industry)
    log_event("roi.report", None, industry=context.industry, value=report.estimated_impact.annual_value)
    return report


def interpret_questions(raw: Optional[str]) -> List[str]:
    """Pull the JSON array between the first ``[`` and the last ``]``; fewer than three strings means fallback."""

    if not raw:
        return FALLBACK_PAIN_QUESTIONS
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end <= start:
        return FALLBACK_PAIN_QUESTIONS
    try:
        parsed = json.loads(raw[start : end + 1])
    except json.JSONDecodeError:
        return FALLBACK_PAIN_QUESTIONS
    if not isinstance(parsed, list):
        return FALLBACK_PAIN_QUESTIONS
    questions = [str(item).strip() for item in parsed if item is not None and str(item).strip()]
    if len(questions) < QUESTION_COUNT:
        return FALLBACK_PAIN_QUESTIONS
    return questions[:QUESTION_COUNT]


def coerce_roi_report(data: Optional[Mapping[str, Any]], context: DiagnosticContext) -> Optional[RoiReport]:
    """Fill gaps in a decoded report with defaults; dollar figures round to the nearest 100."""

    if data is None:
        return None
    top = data.get("topOpportunity") if isinstance(data.get("topOpportunity"), Mapping) else {}
    impact = data.get("estimatedImpact") if isinstance(data.get("estimatedImpact"), Mapping) else {}
    secondary = data.get("secondaryOpportunities") if isinstance(data.get("secondaryOpportunities"), list) else []
    return RoiReport(
        business_name=_text(data.get("businessName")) or context.business_name,
        industry=_text(data.get("industry")) or context.industry,
        top_opportunity=Opportunity(
            title=_text(top.get("title")) or "Workflow Automation",
            description=_text(top.get("description")),
        ),
        estimated_impact=EstimatedImpact(
            time_saved_hours_per_week=_number(impact.get("timeSavedHoursPerWeek"), 5),
            annual_value=_dollars(impact.get("annualValue")),
            implementation_cost=_dollars(impact.get("implementationCost")),
            payback_months=_number(impact.get("paybackMonths"), 3),
        ),
        secondary_opportunities=[
            SecondaryOpportunity(
                title=_text(item.get("title")),
                description=_text(item.get("description")),
                time_saved_hours_per_week=_optional_number(item.get("timeSavedHoursPerWeek")),
            )
            for item in secondary[:MAX_SECONDARY]
            if isinstance(item, Mapping)
        ],
        recommended_next_step=_text(data.get("recommendedNextStep")) or DEFAULT_NEXT_STEP,
    )


def fallback_roi_report(business_name: str, industry: str) -> RoiReport:
    return RoiReport(
        business_name=business_name,
        industry=industry,
        top_opportunity=Opportunity(
            title="Repetitive Task Automation",
            description=(
                "Based on what you've shared, the biggest opportunity is automating the manual, repetitive tasks "
                f"that eat into your team's day. The most common pattern in {industry} businesses is data that gets "
                "entered in one place and then re-typed or copy-pasted into another."
            ),
        ),
        estimated_impact=EstimatedImpact(
            time_saved_hours_per_week=8, annual_value=12500, implementation_cost=4000, payback_months=4
        ),
        secondary_opportunities=[
            SecondaryOpportunity(
                title="Automated Customer Communication",
                description=(
                    "Set up automatic responses and follow-ups for common customer requests, reducing response "
                    "time and freeing up staff."
                ),
                time_saved_hours_per_week=3,
            ),
            SecondaryOpportunity(
                title="Reporting & Data Consolidation",
                description=(
                    "Automatically pull data from your tools into a single dashboard or spreadsheet, eliminating "
                    "manual report building."
                ),
                time_saved_hours_per_week=2,
            ),
        ],
        recommended_next_step="Book a 30-minute call to walk through your actual workflows and confirm these numbers.",
    )


def _report_task(context: DiagnosticContext) -> str:
    answers = "\n\n".join(
        f"Q{index}: {pair.question}\nA{index}: {pair.answer}" for index, pair in enumerate(context.pain_answers, start=1)
    )
    return "\n".join(
        [
            f"BUSINESS: {context.business_name}",
            f"INDUSTRY: {context.industry}",
            "",
            f"SOFTWARE STACK: {_stack_list(context.software_stack, 'No specific tools listed')}",
            "",
            "INDUSTRY RESEARCH:",
            clamp_text(context.research_context, REPORT_RESEARCH_CHARS),
            "",
            "DIAGNOSTIC ANSWERS:",
            answers,
            "",
            "Generate the ROI report as JSON matching this schema:",
            REPORT_SCHEMA,
            NO_FENCES,
        ]
    )


def _stack_list(stack: Sequence[str], empty: str) -> str:
    tools = [tool.strip() for tool in stack if tool and tool.strip()]
    return ", ".join(tools) if tools else empty


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _number(value: Any, default: float) -> float:
    try:
        numeric = float(value if value is not None else default)
    except (TypeError, ValueError):
        numeric = float(default)
    if not math.isfinite(numeric):
        numeric = float(default)
    return max(0.0, numeric)


def _dollars(value: Any) -> int:
    return int(round(_number(value, 0) / 100) * 100)


__all__ = [
    "DiagnosticContext",
    "EstimatedImpact",
    "FALLBACK_PAIN_QUESTIONS",
    "INDUSTRY_OPTIONS",
    "INDUSTRY_SPECIFIC_TOOLS",
    "Opportunity",
    "PainAnswer",
    "REPORT_CONTENT",
    "RoiReport",
    "SOFTWARE_STACK_CATEGORIES",
    "SecondaryOpportunity",
    "coerce_roi_report",
    "fallback_roi_report",
    "generate_pain_questions",
    "generate_roi_report",
    "interpret_questions",
    "research_business",
]
