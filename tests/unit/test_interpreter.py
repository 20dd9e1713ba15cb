import json

import pytest

from fit.interpreter import (
    DEFAULT_OPENING,
    FALLBACK_QUESTION,
    FALLBACK_REPORT,
    MAX_ARRAY_ITEMS,
    InterpretationError,
    coerce_report,
    extract_json_object,
    interpret_opening,
    interpret_report,
    interpret_turn,
    parse_json_payload,
)
from fit.models import TurnReply


def test_extract_json_object_ignores_surrounding_prose() -> None:
    raw = 'Sure! {"message":"ok","readyForReport":false} Thanks'
    assert extract_json_object(raw) == {"message": "ok", "readyForReport": False}


def test_extract_json_object_handles_code_fences() -> None:
    raw = '```json\n{"message": "fenced", "readyForReport": true}\n```'
    assert extract_json_object(raw) == {"message": "fenced", "readyForReport": True}


@pytest.mark.parametrize(
    "raw",
    [None, "", "no braces here", "} backwards {", "{not json}", "[1, 2, 3]", '{"a": 1'],
)
def test_extract_json_object_returns_none_for_unusable_input(raw) -> None:
    assert extract_json_object(raw) is None


def test_interpret_turn_round_trip() -> None:
    reply = interpret_turn('Sure! {"message":"ok","readyForReport":false} Thanks')
    assert reply.message == "ok"
    assert reply.ready_for_report is False
    assert reply.is_fallback is False


def test_interpret_turn_defaults_missing_readiness_to_false() -> None:
    reply = interpret_turn('{"message": "How many emails a week?"}')
    assert reply.message == "How many emails a week?"
    assert reply.ready_for_report is False


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "I think we should keep talking.",
        '{"message": "", "readyForReport": true}',
        '{"message": "ok", "readyForReport": "yes"}',
        '{"readyForReport": true}',
        '{"message": "ok", "readyForReport": tru}',
    ],
)
def test_interpret_turn_falls_back(raw) -> None:
    reply = interpret_turn(raw)
    assert reply.message == FALLBACK_QUESTION
    assert reply.ready_for_report is False
    assert reply.is_fallback is True


def test_turn_reply_serialises_camel_case_without_fallback_flag() -> None:
    dumped = TurnReply(message="hi", ready_for_report=True, is_fallback=True).model_dump(by_alias=True)
    assert dumped == {"message": "hi", "readyForReport": True}


def test_interpret_opening_uses_message_or_default() -> None:
    assert interpret_opening('{"message": "What does a busy Saturday look like?"}') == "What does a busy Saturday look like?"
    assert interpret_opening("Hello there") == DEFAULT_OPENING
    assert interpret_opening(None) == DEFAULT_OPENING


def test_interpret_report_coerces_fields() -> None:
    raw = "Here you go:\n" + json.dumps(
        {
            "verdict": "yes",
            "approachSummary": "  Automate the inbox.  ",
            "fitSignals": ["email triage", 42, "", None, "  "],
            "risks": "not a list",
            "nextSteps": [f"step {index}" for index in range(12)],
            "scores": [
                {"label": "Time Freed Up", "current": -4, "projected": 14},
                {"label": "Manual Work", "current": "7", "projected": "n/a"},
                {"current": 3, "projected": 5},
            ],
            "keyInsights": [{"label": "Root", "detail": "Repeated questions"}, "bad"],
            "timeline": {"phase1": {"label": "First 30 Days", "action": "Map it"}},
        }
    )
    report = interpret_report(raw)
    assert report.verdict == "YES"
    assert report.approach_summary == "Automate the inbox."
    assert report.hero_recommendation == ""
    assert report.fit_signals == ["email triage", "42"]
    assert report.risks == []
    assert len(report.next_steps) == MAX_ARRAY_ITEMS
    assert [(score.current, score.projected) for score in report.scores] == [(0.0, 10.0), (7.0, 7.0)]
    assert report.key_insights[0].detail == "Repeated questions"
    assert report.timeline.phase1.action == "Map it"
    assert report.timeline.phase3.label == ""


@pytest.mark.parametrize(
    "payload",
    [
        {"verdict": "MAYBE", "approachSummary": "x"},
        {"verdict": "NO", "approachSummary": "   "},
        {"approachSummary": "x"},
    ],
)
def test_interpret_report_invalid_required_fields_fall_back(payload) -> None:
    report = interpret_report(json.dumps(payload))
    assert report == FALLBACK_REPORT
    assert report is not FALLBACK_REPORT


def test_interpret_report_without_json_falls_back() -> None:
    assert interpret_report("Sorry, I can't do that.") == FALLBACK_REPORT
    assert interpret_report(None) == FALLBACK_REPORT


def test_fallback_report_is_schema_complete() -> None:
    dumped = FALLBACK_REPORT.model_dump(by_alias=True)
    for key in ("verdict", "heroRecommendation", "approachSummary", "fitSignals", "risks", "nextSteps", "scores"):
        assert dumped[key]
    assert coerce_report(dumped) == FALLBACK_REPORT


def test_parse_json_payload_raises_on_missing_json() -> None:
    with pytest.raises(InterpretationError, match="valid JSON"):
        parse_json_payload("nothing to see", TurnReply)


def test_parse_json_payload_raises_on_schema_mismatch() -> None:
    with pytest.raises(InterpretationError, match="expected schema"):
        parse_json_payload('{"readyForReport": false}', TurnReply)


def test_parse_json_payload_validates_aliases() -> None:
    reply = parse_json_payload('noise {"message": "ok", "readyForReport": true} noise', TurnReply)
    assert reply.ready_for_report is True
