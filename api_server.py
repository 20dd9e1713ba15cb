from __future__ import annotations  # FastAPI server exposing the fit diagnostic

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from api.routes import assessment_router, get_store, limiter, rate_limit_exceeded, roi_router, router
from api.schemas import HealthResp
from config.settings import settings
from observability import configure_logging
from services.sessions import SessionSweeper


logger = logging.getLogger(__name__)

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Run the idle-session sweeper for the app lifetime
    sweeper = SessionSweeper(get_store(), settings.SESSION_SWEEP_SECONDS)
    sweeper.start()
    logger.info("Session sweeper started (every %ss, ttl %s)", settings.SESSION_SWEEP_SECONDS, get_store().ttl)
    try:
        yield
    finally:
        sweeper.stop()
        logger.info("Session sweeper stopped")


app = FastAPI(title="Fit Diagnostic API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded)
app.include_router(router)
app.include_router(roi_router)
app.include_router(assessment_router)


@app.get("/health", response_model=HealthResp)
def health() -> HealthResp:  # Liveness probe with the live session count
    return HealthResp(sessions=len(get_store()))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000)
