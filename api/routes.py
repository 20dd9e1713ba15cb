"""FastAPI routes for the fit diagnostic conversation, ROI wizard and one-shot assessment."""

import logging
import time
from datetime import timedelta

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api.schemas import (
    AssessmentResp,
    LeadReq,
    LeadResp,
    MessageReq,
    QuestionsReq,
    QuestionsResp,
    ResearchReq,
    ResearchResp,
    RoiReportReq,
    RoiReportResp,
    StartReq,
    TurnResp,
)
from assessment import FitAssessmentInput, generate_fit_assessment
from config import ConfigurationError, LlmRoute, resolve_route
from config.settings import settings
from extraction import ExtractionError, extract_text
from fit import InterpretationError, handle_message, open_session
from fit.models import Session, TurnOutcome
from llm_gateway import LlmGatewayError, LlmTimeoutError
from observability import log_event
from roi import REPORT_CONTENT, generate_pain_questions, generate_roi_report, research_business
from services.sessions import SessionNotFoundError, SessionStore


logger = logging.getLogger(__name__)

SESSION_NOT_FOUND = "Session not found. Please restart the diagnostic."
NOT_CONFIGURED = "The assistant is not configured right now. Please try again later."
RATE_LIMITED = "Too many requests. Please wait a minute before trying again."

store = SessionStore(ttl=timedelta(minutes=settings.SESSION_TTL_MINUTES))
limiter = Limiter(key_func=get_remote_address)
ASSESSMENT_RATE = f"{settings.ASSESSMENT_RATE_LIMIT}/{settings.ASSESSMENT_RATE_WINDOW_S} seconds"

router = APIRouter(prefix="/api/fit")
roi_router = APIRouter(prefix="/api/fit/roi")
assessment_router = APIRouter(prefix="/api")


def get_store() -> SessionStore:
    return store


def _route() -> LlmRoute:
    return resolve_route(settings)


def _opening_resp(session: Session) -> TurnResp:
    return TurnResp(session_id=session.id, stage=session.stage, content=session.transcript[-1].content)


def _turn_resp(outcome: TurnOutcome) -> TurnResp:
    return TurnResp(
        session_id=outcome.session_id,
        stage=outcome.stage,
        content=outcome.content,
        verdict=outcome.verdict,
        report=outcome.report,
    )


def _start(context_text: str, *, source: str) -> TurnResp:
    store.sweep()
    try:
        session = open_session(store, context_text, settings=settings, route_factory=_route)
    except ConfigurationError as exc:
        logger.error("Unable to open session: %s", exc)
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error while opening session")
        raise HTTPException(status_code=500, detail="Unable to start the diagnostic. Please try again.") from exc
    log_event("fit.start", session.id, stage=session.stage, chars=len(context_text), source=source)
    return _opening_resp(session)


@router.post("/start", response_model=TurnResp, response_model_exclude_none=True)
def start(req: StartReq) -> TurnResp:
    return _start(req.context_text, source="text")


@router.post("/upload", response_model=TurnResp, response_model_exclude_none=True)
def upload(file: UploadFile = File(...)) -> TurnResp:
    data = file.file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise HTTPException(status_code=413, detail="File is too large. The limit is 5 MB.")
    try:
        text = extract_text(data, file.filename or "")
    except ExtractionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _start(text[: settings.MAX_START_TEXT_CHARS], source="upload")


@router.post("/message", response_model=TurnResp, response_model_exclude_none=True)
def message(req: MessageReq) -> TurnResp:
    store.sweep()
    try:
        outcome = handle_message(
            store,
            req.session_id,
            req.message.strip(),
            settings=settings,
            route_factory=_route,
        )
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND) from exc
    except ConfigurationError as exc:
        logger.error("Unable to continue session %s: %s", req.session_id, exc)
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error while handling message")
        raise HTTPException(status_code=500, detail="Unable to continue the diagnostic. Please try again.") from exc
    return _turn_resp(outcome)


@router.post("/lead", response_model=LeadResp)
def lead(req: LeadReq) -> LeadResp:
    log_event(
        "fit.lead",
        None,
        email=req.email,
        name=req.name,
        business_name=req.business_name,
        industry=req.industry,
        top_recommendation=req.top_recommendation,
    )
    return LeadResp()


@roi_router.post("/research", response_model=ResearchResp)
def roi_research(req: ResearchReq) -> ResearchResp:
    try:
        brief = research_business(req.business_name, req.industry, route=_route())
    except ConfigurationError as exc:
        logger.error("Research unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED) from exc
    except LlmGatewayError as exc:
        logger.warning("Research failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate research context. Please try again.") from exc
    return ResearchResp(research_context=brief)


@roi_router.post("/questions", response_model=QuestionsResp)
def roi_questions(req: QuestionsReq) -> QuestionsResp:
    try:
        questions = generate_pain_questions(
            req.business_name,
            req.industry,
            req.research_context,
            req.software_stack,
            route=_route(),
        )
    except ConfigurationError as exc:
        logger.error("Question generation unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED) from exc
    except LlmGatewayError as exc:
        logger.warning("Question generation failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate questions. Please try again.") from exc
    return QuestionsResp(questions=questions)


@roi_router.post("/report", response_model=RoiReportResp)
def roi_report(req: RoiReportReq) -> RoiReportResp:
    try:
        report = generate_roi_report(req.diagnostic_context, route=_route())
    except ConfigurationError as exc:
        logger.error("ROI report unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED) from exc
    return RoiReportResp(content=REPORT_CONTENT, report=report)


def _assessment_error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("Assessment rate limited for %s (%s)", get_remote_address(request), exc.detail)
    return _assessment_error(429, RATE_LIMITED)


@assessment_router.post("/fit-assessment", response_model=AssessmentResp)
@limiter.limit(ASSESSMENT_RATE)
def fit_assessment(request: Request, req: FitAssessmentInput):
    started = time.time()
    try:
        result = generate_fit_assessment(
            req.input_text,
            route=resolve_route(settings),
            limit=settings.ASSESSMENT_INPUT_CHARS,
        )
    except ConfigurationError as exc:
        logger.error("Assessment unavailable: %s", exc)
        return _assessment_error(503, NOT_CONFIGURED)
    except LlmTimeoutError:
        logger.warning("Assessment timed out after %dms", int((time.time() - started) * 1000))
        return _assessment_error(504, "Analysis took too long. Please try again with a shorter input.")
    except (LlmGatewayError, InterpretationError) as exc:
        logger.warning("Assessment failed: %s", exc)
        return _assessment_error(502, "Failed to generate assessment. Please try again.")
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during fit assessment")
        return _assessment_error(500, "Failed to generate assessment. Please try again.")
    return AssessmentResp(data=result)
