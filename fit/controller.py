from __future__ import annotations  # Diagnostic stage controller

import logging
from typing import TYPE_CHECKING, Callable, Optional

from config import LlmRoute, Settings, resolve_route
from llm_gateway import LlmGatewayError, Prompt, complete
from observability import log_event, span

from .interpreter import DEFAULT_OPENING, FALLBACK_REPORT, interpret_opening, interpret_report, interpret_turn
from .models import FitReport, Session, Stage, TurnOutcome, TurnReply
from .prompts import build_opening_prompt, build_report_prompt, build_turn_prompt

if TYPE_CHECKING:
    from services.sessions import SessionStore

logger = logging.getLogger(__name__)

RouteFactory = Callable[[], LlmRoute]

CLOSING_MESSAGE = (
    "Thank you for sharing all of that. I have enough context now to put together your FitReport. "
    "Here's what I'm seeing..."
)


def open_session(
    store: SessionStore,
    context_text: str,
    *,
    settings: Settings,
    route_factory: Optional[RouteFactory] = None,
) -> Session:  # Create a session and its opening assistant message
    context = (context_text or "").strip()
    if not context:
        session = store.create("", DEFAULT_OPENING)
        log_event("turn.open", session.id, stage=session.stage, outcome="default")
        return session
    route = _route(settings, route_factory)
    prompt = build_opening_prompt(context, limit=settings.OPENING_CONTEXT_CHARS)
    raw = _ask(prompt, route, session_id=None, call="opening")
    opening = interpret_opening(raw)
    session = store.create(context, opening)
    outcome = "model" if opening != DEFAULT_OPENING else "fallback"
    log_event("turn.open", session.id, stage=session.stage, outcome=outcome)
    return session


def handle_message(
    store: SessionStore,
    session_id: str,
    message: str,
    *,
    settings: Settings,
    route_factory: Optional[RouteFactory] = None,
) -> TurnOutcome:  # Accept one user message and produce the next assistant turn
    store.get(session_id)
    with store.lock(session_id):
        session = store.get(session_id)
        store.touch(session)
        if session.is_complete:
            log_event("turn.cached", session.id, stage=session.stage, turns=session.user_turns)
            return _terminal_outcome(session)

        route = _route(settings, route_factory)
        session.add_message("user", message)
        session.user_turns += 1

        if session.user_turns >= settings.MAX_TURNS:
            return _finalize(session, route, settings=settings, decision="ceiling")

        prompt = build_turn_prompt(
            session,
            limit=settings.TURN_CONTEXT_CHARS,
            narrowing_turns=settings.NARROWING_TURNS,
            max_turns=settings.MAX_TURNS,
        )
        reply = interpret_turn(_ask(prompt, route, session_id=session.id, call="turn"))
        if decide_ready(reply, session.user_turns, min_turns=settings.MIN_TURNS_BEFORE_REPORT):
            return _finalize(session, route, settings=settings, decision="ready")

        session.add_message("assistant", reply.message)
        if not reply.is_fallback:
            session.advance_to(stage_for_turns(session.user_turns, narrowing_turns=settings.NARROWING_TURNS))
        log_event(
            "turn.ask",
            session.id,
            stage=session.stage,
            turns=session.user_turns,
            outcome="fallback" if reply.is_fallback else "model",
        )
        return TurnOutcome(
            session_id=session.id,
            stage=session.stage,
            content=reply.message,
            degraded=reply.is_fallback,
        )


def decide_ready(reply: TurnReply, user_turns: int, *, min_turns: int) -> bool:  # Model readiness gated by the turn floor
    if reply.is_fallback:
        return False
    return reply.ready_for_report and user_turns >= min_turns


def stage_for_turns(user_turns: int, *, narrowing_turns: int) -> Stage:  # Non-terminal stage band for a turn count
    if user_turns <= 0:
        return "INTAKE"
    if user_turns <= narrowing_turns:
        return "NARROWING"
    return "DEEP_DIVE"


def _finalize(session: Session, route: LlmRoute, *, settings: Settings, decision: str) -> TurnOutcome:
    prompt = build_report_prompt(session, limit=settings.REPORT_CONTEXT_CHARS)
    raw = _ask(prompt, route, session_id=session.id, call="report")
    report: FitReport = interpret_report(raw)
    degraded = report == FALLBACK_REPORT
    session.advance_to("REPORT")
    session.report = report
    session.verdict = report.verdict
    session.closing_message = CLOSING_MESSAGE
    session.add_message("assistant", CLOSING_MESSAGE)
    log_event(
        "turn.report",
        session.id,
        stage=session.stage,
        turns=session.user_turns,
        decision=decision,
        outcome="fallback" if degraded else "model",
    )
    outcome = _terminal_outcome(session)
    outcome.degraded = degraded
    return outcome


def _terminal_outcome(session: Session) -> TurnOutcome:
    return TurnOutcome(
        session_id=session.id,
        stage=session.stage,
        content=session.closing_message or CLOSING_MESSAGE,
        verdict=session.verdict,
        report=session.report,
    )


def _route(settings: Settings, route_factory: Optional[RouteFactory]) -> LlmRoute:
    if route_factory is not None:
        return route_factory()
    return resolve_route(settings)


def _ask(prompt: Prompt, route: LlmRoute, *, session_id: Optional[str], call: str) -> Optional[str]:
    """Run one completion; upstream failures are logged and absorbed as ``None``."""

    with span(session_id, call, model=route.model) as outcome:
        try:
            return complete(prompt, cfg=route)
        except LlmGatewayError as exc:
            outcome["outcome"] = "upstream_error"
            logger.warning("Completion call '%s' failed, falling back: %s", call, exc)
            return None


__all__ = [
    "CLOSING_MESSAGE",
    "decide_ready",
    "handle_message",
    "open_session",
    "stage_for_turns",
]
