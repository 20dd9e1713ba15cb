import json
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import routes as api_routes
from config import LlmRoute, Settings
from config.settings import settings
from llm_gateway import Prompt
from services.sessions import SessionStore


class ScriptedCompletion:
    """Stand-in for ``llm_gateway.complete`` replaying canned replies in order."""

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None) -> None:
        self.replies: List[Union[str, Exception]] = list(replies or [])
        self.prompts: List[Prompt] = []
        self.routes: List[LlmRoute] = []

    def __call__(self, prompt: Prompt, *, cfg: LlmRoute, client: Any = None) -> str:
        self.prompts.append(prompt)
        self.routes.append(cfg)
        if not self.replies:
            raise AssertionError("unexpected completion call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


def turn_reply(message: str, ready: bool = False) -> str:
    return json.dumps({"message": message, "readyForReport": ready})


def report_reply(**overrides: Any) -> str:
    payload = {
        "verdict": "YES",
        "heroRecommendation": "Get your evenings back from the inbox.",
        "approachSummary": "Sort incoming emails by question type and draft replies for the common ones.",
        "keyInsights": [{"label": "The Root Problem", "detail": "The same questions arrive every day."}],
        "timeline": {
            "phase1": {"label": "First 30 Days", "action": "Collect the most common questions."},
            "phase2": {"label": "Days 30-60", "action": "Draft replies for review."},
            "phase3": {"label": "Days 60-90", "action": "Send routine replies automatically."},
        },
        "scores": [{"label": "Time Freed Up", "current": 3, "projected": 8}],
        "fitSignals": ["Built an email classifier for a brewery"],
        "risks": ["Seasonal spikes in volume"],
        "nextSteps": ["Share a week of emails"],
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def cfg() -> Settings:
    return Settings(_env_file=None, ANTHROPIC_API_KEY="test-key", OPENAI_API_KEY=None)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(ttl=timedelta(minutes=30))


@pytest.fixture(autouse=True)
def api_state(monkeypatch):
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    api_routes.store.clear()
    api_routes.limiter.reset()
    try:
        yield
    finally:
        api_routes.store.clear()
        api_routes.limiter.reset()
