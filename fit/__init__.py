from __future__ import annotations  # Re-export fit diagnostic public API

from .controller import CLOSING_MESSAGE, decide_ready, handle_message, open_session, stage_for_turns  # noqa: F401
from .interpreter import (  # noqa: F401
    DEFAULT_OPENING,
    FALLBACK_QUESTION,
    FALLBACK_REPORT,
    InterpretationError,
    extract_json_object,
    interpret_opening,
    interpret_report,
    interpret_turn,
    parse_json_payload,
)
from .models import FitMessage, FitReport, Session, Stage, TurnOutcome, TurnReply  # noqa: F401

__all__ = [
    "CLOSING_MESSAGE",
    "DEFAULT_OPENING",
    "FALLBACK_QUESTION",
    "FALLBACK_REPORT",
    "FitMessage",
    "FitReport",
    "InterpretationError",
    "Session",
    "Stage",
    "TurnOutcome",
    "TurnReply",
    "decide_ready",
    "extract_json_object",
    "handle_message",
    "interpret_opening",
    "interpret_report",
    "interpret_turn",
    "open_session",
    "parse_json_payload",
    "stage_for_turns",
]
