import pytest

from observability import logger as logger_mod
from observability import tracing


def test_human_line_masks_contact_details() -> None:
    line = logger_mod._format_human(
        {"kind": "fit.lead", "session_id": None, "email": "owner@bakery.example", "industry": "Food"}
    )
    assert line.startswith("session=- kind=fit.lead")
    assert "email=o***@bakery.example" in line
    assert "owner@" not in line
    assert "industry" not in line


def test_human_line_lists_known_fields_in_order() -> None:
    line = logger_mod._format_human({"kind": "turn.ask", "session_id": "s-1", "outcome": "model", "stage": "NARROWING", "turns": 2})
    assert line == "session=s-1 kind=turn.ask stage=NARROWING turns=2 outcome=model"


def test_span_records_timing_and_outcome(monkeypatch) -> None:
    events = []
    monkeypatch.setattr(tracing, "log_event", lambda kind, session_id, **fields: events.append((kind, session_id, fields)))

    with tracing.span("s-1", "turn", model="m") as outcome:
        outcome["outcome"] = "upstream_error"
    with pytest.raises(RuntimeError):
        with tracing.span("s-1", "report"):
            raise RuntimeError("boom")

    assert [event[2]["call"] for event in events] == ["turn", "report"]
    assert events[0][2]["outcome"] == "upstream_error"
    assert events[0][2]["model"] == "m"
    assert events[1][2]["outcome"] == "error"
    assert all(isinstance(event[2]["ms"], int) for event in events)
