"""
geotera.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn geotera.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from geotera.api.auth import router as auth_router  # noqa: E402
from geotera.api.deps import get_engine  # noqa: E402
from geotera.api.routes.admin import router as admin_router  # noqa: E402
from geotera.api.routes.leaderboard import router as leaderboard_router  # noqa: E402
from geotera.api.routes.profile import router as profile_router  # noqa: E402
from geotera.api.routes.reports import router as reports_router  # noqa: E402
from geotera.api.routes.rewards import router as rewards_router  # noqa: E402
from geotera.database.engine import init_db  # noqa: E402
from geotera.errors import (  # noqa: E402
    GeoteraError,
    InsufficientBalance,
    InvalidAmount,
    NothingToRedeem,
    PersistenceUnavailable,
    ReportAlreadyCollected,
    ReportNotFound,
    RewardNotFound,
    UserNotFound,
    VerificationAlreadyUsed,
    VerificationFailed,
)

logger = logging.getLogger(__name__)

# Most specific first; GeoteraError subclasses not listed map to 400
_ERROR_STATUS: list[tuple[type[GeoteraError], int]] = [
    (InsufficientBalance, 409),
    (NothingToRedeem, 409),
    (ReportAlreadyCollected, 409),
    (VerificationAlreadyUsed, 409),
    (InvalidAmount, 422),
    (VerificationFailed, 422),
    (RewardNotFound, 404),
    (ReportNotFound, 404),
    (UserNotFound, 404),
    (PersistenceUnavailable, 503),
]


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables and seed the catalogue."""
    engine = get_engine()
    init_db(engine)
    logger.info("Geotera API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Geotera API shutting down")


app = FastAPI(
    title="Geotera API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GeoteraError)
async def domain_error_handler(request: Request, exc: GeoteraError) -> JSONResponse:
    """Render domain errors as user-facing JSON with a fitting status code."""
    code = next((c for cls, c in _ERROR_STATUS if isinstance(exc, cls)), 400)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(rewards_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
