import json

import pytest
from pydantic import ValidationError

import assessment.assessment as assessment_mod
from config import LlmRoute
from fit.interpreter import InterpretationError
from fit.prompts import OPERATOR_PROFILE
from llm_gateway import LlmTimeoutError


def _route() -> LlmRoute:
    return LlmRoute(
        name="test",
        provider="openai",
        base_url="http://example.com",
        endpoint="/v1/chat/completions",
        model="test-model",
        api_key="k",
        timeout_s=1.0,
    )


def _assessment_payload(**overrides) -> dict:
    payload = {
        "summary": "Strong fit for an operations automation role.",
        "fitScore": 78,
        "strengths": ["Built email automation for a brewery"],
        "gaps": ["No enterprise architecture experience"],
        "risks": ["Large team change management"],
        "recommendedNextSteps": ["Lead with the Blackbird Brewing project"],
        "keywords": ["automation", "email"],
        "roleSignals": {
            "seniority": "Mid",
            "domain": "Operations",
            "primaryTools": ["Make.com"],
            "coreResponsibilities": ["Automate workflows"],
        },
    }
    payload.update(overrides)
    return payload


def test_build_task_includes_input_and_schema() -> None:
    task = assessment_mod._build_task("Operations coordinator for a bakery")
    assert task.startswith("Analyze the following input")
    assert "Operations coordinator for a bakery" in task
    assert '"recommendedNextSteps"' in task
    assert task.strip().endswith("Return only the JSON object without markdown fences, text, or commentary.")


def test_generate_fit_assessment_invokes_gateway(monkeypatch) -> None:
    captured: dict[str, object] = {}

    def fake_complete(prompt, *, cfg):
        captured["prompt"] = prompt
        captured["cfg"] = cfg
        return "Here is the analysis:\n" + json.dumps(_assessment_payload())

    monkeypatch.setattr(assessment_mod, "complete", fake_complete)
    route = _route()
    result = assessment_mod.generate_fit_assessment("x" * 12000, route=route, limit=10000)
    assert result.fit_score == 78
    assert result.role_signals.primary_tools == ["Make.com"]
    assert captured["cfg"] == route
    prompt = captured["prompt"]
    assert OPERATOR_PROFILE in prompt.system
    assert "x" * 10000 in prompt.messages[0]["content"]
    assert "x" * 10001 not in prompt.messages[0]["content"]
    assert result.model_dump(by_alias=True)["recommendedNextSteps"] == ["Lead with the Blackbird Brewing project"]


@pytest.mark.parametrize(
    "raw",
    [
        "no json here",
        json.dumps(_assessment_payload(fitScore=140)),
        json.dumps(_assessment_payload(strengths=[])),
        json.dumps({"summary": "partial"}),
    ],
)
def test_generate_fit_assessment_rejects_invalid_output(monkeypatch, raw) -> None:
    monkeypatch.setattr(assessment_mod, "complete", lambda prompt, *, cfg: raw)
    with pytest.raises(InterpretationError):
        assessment_mod.generate_fit_assessment("Role text", route=_route())


def test_generate_fit_assessment_propagates_timeout(monkeypatch) -> None:
    def slow(prompt, *, cfg):
        raise LlmTimeoutError("timed out")

    monkeypatch.setattr(assessment_mod, "complete", slow)
    with pytest.raises(LlmTimeoutError):
        assessment_mod.generate_fit_assessment("Role text", route=_route())


def test_input_is_trimmed_and_bounded() -> None:
    assert assessment_mod.FitAssessmentInput(inputText="  text  ").input_text == "text"
    with pytest.raises(ValidationError):
        assessment_mod.FitAssessmentInput(inputText="   ")
    with pytest.raises(ValidationError):
        assessment_mod.FitAssessmentInput(inputText="x" * 10001)
