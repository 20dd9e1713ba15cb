from __future__ import annotations  # Recover validated JSON payloads from free-form model output

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .models import FitReport, KeyInsight, ScoreDimension, Timeline, TimelinePhase, TurnReply

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

MAX_ARRAY_ITEMS = 8

DEFAULT_OPENING = (
    "I appreciate you making the time. From your perspective, what's been taking up most of your energy lately?"
)
FALLBACK_QUESTION = "Could you tell me more about how that plays out day to day?"

FALLBACK_REPORT = FitReport(
    verdict="YES",
    hero_recommendation="Free your team from the repetitive work that keeps pulling them away from customers.",
    approach_summary=(
        "Start by mapping the one process that eats the most time each week, then automate the repetitive "
        "steps while keeping a person in charge of the judgement calls. Measure the hours saved from week one."
    ),
    key_insights=[
        KeyInsight(label="The Root Problem", detail="The same manual steps are repeated by hand every week."),
        KeyInsight(label="Where the Fix Lives", detail="In the hand-offs between the tools your team already uses."),
        KeyInsight(label="First Win", detail="Automate the single most repeated task and track the time it frees."),
    ],
    timeline=Timeline(
        phase1=TimelinePhase(label="First 30 Days", action="Map the current process and pick the first task to automate."),
        phase2=TimelinePhase(label="Days 30-60", action="Launch the first automation with a person reviewing the results."),
        phase3=TimelinePhase(label="Days 60-90", action="Measure the time saved and extend to the next repeated task."),
    ),
    scores=[
        ScoreDimension(label="Time Freed Up", current=3, projected=7),
        ScoreDimension(label="Manual Work", current=7, projected=3),
        ScoreDimension(label="Response Speed", current=4, projected=8),
        ScoreDimension(label="Info Findability", current=4, projected=7),
        ScoreDimension(label="Team Focus", current=4, projected=7),
    ],
    fit_signals=[
        "Hands-on experience automating repetitive customer communication",
        "Operations background that keeps changes practical for small teams",
        "Track record of turning scattered know-how into one place staff can search",
    ],
    risks=[
        "The process needs a clear owner to keep improvements going",
        "Busy periods can leave little room to test changes",
    ],
    next_steps=[
        "Book a 30-minute call to walk through the current workflow",
        "Collect one week of examples of the repeated task",
        "Agree on how time saved will be measured",
    ],
)


class InterpretationError(ValueError):
    """Raised by the strict parser when model output cannot be used."""


def extract_json_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the JSON object spanning the first ``{`` to the last ``}`` in ``raw``.

    Returns ``None`` when no brace pair exists, the slice is not valid JSON, or
    it decodes to something other than an object.
    """

    if not raw:
        return None
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        parsed = json.loads(raw[start : end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def interpret_turn(raw: Optional[str]) -> TurnReply:  # Next-question payload or the neutral fallback
    reply = _turn_reply(raw)
    if reply is None:
        logger.warning("Unusable next-question output, using fallback question")
        return TurnReply(message=FALLBACK_QUESTION, ready_for_report=False, is_fallback=True)
    return reply


def interpret_opening(raw: Optional[str]) -> str:  # Opening question or the default opening
    reply = _turn_reply(raw)
    if reply is None:
        logger.warning("Unusable opening output, using default opening")
        return DEFAULT_OPENING
    return reply.message


def interpret_report(raw: Optional[str]) -> FitReport:  # Validated report or the complete fallback report
    report = coerce_report(extract_json_object(raw))
    if report is None:
        logger.warning("Unusable report output, using fallback report")
        return fallback_report()
    return report


def fallback_report() -> FitReport:
    return FALLBACK_REPORT.model_copy(deep=True)


def coerce_report(data: Optional[Mapping[str, Any]]) -> Optional[FitReport]:
    """Normalise a decoded report object; ``None`` when required fields are unusable."""

    if data is None:
        return None
    verdict = _verdict(data.get("verdict"))
    summary = _string(data.get("approachSummary"))
    if verdict is None or not summary:
        return None
    timeline = data.get("timeline") if isinstance(data.get("timeline"), Mapping) else {}
    try:
        return FitReport(
            verdict=verdict,
            hero_recommendation=_string(data.get("heroRecommendation")),
            approach_summary=summary,
            key_insights=_insights(data.get("keyInsights")),
            timeline=Timeline(
                phase1=_phase(timeline.get("phase1")),
                phase2=_phase(timeline.get("phase2")),
                phase3=_phase(timeline.get("phase3")),
            ),
            scores=_scores(data.get("scores")),
            fit_signals=_string_list(data.get("fitSignals")),
            risks=_string_list(data.get("risks")),
            next_steps=_string_list(data.get("nextSteps")),
        )
    except ValidationError as exc:
        logger.warning("Report failed validation: %s", exc)
        return None


def parse_json_payload(raw: Optional[str], schema: Type[T]) -> T:
    """Strictly extract and validate ``schema`` from ``raw``.

    Raises:
        InterpretationError: If no JSON object is found or it fails validation.
    """

    data = extract_json_object(raw)
    if data is None:
        raise InterpretationError("AI response did not contain valid JSON structure.")
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid value")
        raise InterpretationError(f"AI response did not match expected schema: {location} {message}".strip()) from exc


def _turn_reply(raw: Optional[str]) -> Optional[TurnReply]:
    data = extract_json_object(raw)
    if data is None:
        return None
    message = _string(data.get("message"))
    if not message:
        return None
    ready = data.get("readyForReport", False)
    if not isinstance(ready, bool):
        return None
    return TurnReply(message=message, ready_for_report=ready)


def _verdict(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    normalized = value.strip().upper()
    return normalized if normalized in {"YES", "NO"} else None


def _string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [_string(item) for item in value]
    return [item for item in items if item][:MAX_ARRAY_ITEMS]


def _insights(value: Any) -> List[KeyInsight]:
    if not isinstance(value, list):
        return []
    insights: List[KeyInsight] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        label = _string(item.get("label"))
        detail = _string(item.get("detail"))
        if label or detail:
            insights.append(KeyInsight(label=label, detail=detail))
    return insights[:MAX_ARRAY_ITEMS]


def _phase(value: Any) -> TimelinePhase:
    if not isinstance(value, Mapping):
        return TimelinePhase()
    return TimelinePhase(label=_string(value.get("label")), action=_string(value.get("action")))


def _scores(value: Any) -> List[ScoreDimension]:
    if not isinstance(value, list):
        return []
    scores: List[ScoreDimension] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        label = _string(item.get("label"))
        if not label:
            continue
        scores.append(
            ScoreDimension(
                label=label,
                current=_clamp_score(item.get("current"), default=5.0),
                projected=_clamp_score(item.get("projected"), default=7.0),
            )
        )
    return scores[:MAX_ARRAY_ITEMS]


def _clamp_score(value: Any, *, default: float) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        numeric = default
    if numeric != numeric:  # NaN
        numeric = default
    return max(0.0, min(10.0, numeric))


__all__ = [
    "DEFAULT_OPENING",
    "FALLBACK_QUESTION",
    "FALLBACK_REPORT",
    "InterpretationError",
    "MAX_ARRAY_ITEMS",
    "coerce_report",
    "extract_json_object",
    "fallback_report",
    "interpret_opening",
    "interpret_report",
    "interpret_turn",
    "parse_json_payload",
]
