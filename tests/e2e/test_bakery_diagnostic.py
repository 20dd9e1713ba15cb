import json
import re

from fastapi.testclient import TestClient

import api_server
from fit.interpreter import DEFAULT_OPENING

from conftest import ScriptedCompletion, turn_reply

BAKERY_CONTEXT = "We run a 3-person bakery and spend hours each week manually replying to the same email questions."

ANSWERS = [
    "We get around 80 emails a week, mostly asking about custom cake orders, allergens and pickup times.",
    "It takes one of us about six hours a week, usually in the evening after closing.",
    "We would love routine questions answered automatically so we can focus on baking and custom orders.",
]

BAKERY_REPORT = json.dumps(
    {
        "verdict": "YES",
        "heroRecommendation": "Get six hours a week back from the inbox.",
        "approachSummary": (
            "Sort incoming emails by question type, answer the routine allergen and pickup questions "
            "automatically, and send custom cake orders to a person."
        ),
        "keyInsights": [
            {"label": "The Root Problem", "detail": "The same allergen and pickup time questions arrive every week."}
        ],
        "timeline": {
            "phase1": {"label": "First 30 Days", "action": "Collect a month of emails and group the questions."},
            "phase2": {"label": "Days 30-60", "action": "Draft replies for allergens and pickup times."},
            "phase3": {"label": "Days 60-90", "action": "Answer routine emails automatically."},
        },
        "scores": [{"label": "Time Freed Up", "current": 2, "projected": 8}],
        "fitSignals": [
            "Has already built email triage for a small food business",
            "Can route custom cake orders to the right person",
        ],
        "risks": ["Holiday order spikes", "Allergen answers must stay accurate"],
        "nextSteps": ["Export a week of emails", "List the top ten questions"],
    }
)


def _vocabulary(texts) -> set:
    words = set()
    for text in texts:
        words.update(word for word in re.findall(r"[a-z]+", text.lower()) if len(word) > 4)
    return words


def test_bakery_conversation_reaches_grounded_report(monkeypatch) -> None:
    fake = ScriptedCompletion(
        [
            turn_reply("What kinds of questions fill the inbox most weeks?"),
            turn_reply("How much time does answering them take, and who does it?"),
            turn_reply("If that time came back, what would you want the inbox to look like?"),
            turn_reply("That's clear: routine questions are eating your evenings.", ready=True),
            BAKERY_REPORT,
        ]
    )
    monkeypatch.setattr("fit.controller.complete", fake)
    client = TestClient(api_server.app)

    start = client.post("/api/fit/start", json={"text": BAKERY_CONTEXT}).json()
    assert start["stage"] == "INTAKE"
    session_id = start["sessionId"]

    replies = [client.post("/api/fit/message", json={"sessionId": session_id, "message": answer}).json() for answer in ANSWERS]
    final = replies[-1]
    assert [reply["stage"] for reply in replies[:-1]] == ["NARROWING", "NARROWING"]
    assert final["stage"] == "REPORT"
    assert final["verdict"] == "YES"

    transcript_words = _vocabulary([BAKERY_CONTEXT, *ANSWERS])
    report = final["report"]
    array_items = report["fitSignals"] + report["risks"] + report["nextSteps"]
    assert any(_vocabulary([item]) & transcript_words for item in array_items)

    report_prompt = fake.prompts[-1].messages[0]["content"]
    for answer in ANSWERS:
        assert answer in report_prompt


def test_empty_context_opening_is_default_without_completion(monkeypatch) -> None:
    fake = ScriptedCompletion([])
    monkeypatch.setattr("fit.controller.complete", fake)
    start = TestClient(api_server.app).post("/api/fit/start", json={"text": ""}).json()
    assert start["content"] == DEFAULT_OPENING
    assert fake.calls == 0
