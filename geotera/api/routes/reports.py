"""
geotera.api.routes.reports — Waste reports & collection tasks
===============================================================

Reporting is two steps, mirroring the report form:

1. ``POST /reports/verify`` — upload the photo; the classifier's verdict is
   returned together with a short-lived signed ``verification_token``.
2. ``POST /reports`` — submit the report with that token.  Points are only
   credited for a token this server issued to the same user, and each
   token is accepted for one report only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel, Field

from geotera.api.deps import get_config, get_current_user_id, get_engine
from geotera.api.tokens import read_verification, sign_verification
from geotera.config import GeoteraConfig
from geotera.database.models import CollectedWaste, Report, ReportStatus
from geotera.engine.verification import VerificationResult
from geotera.services import classifier, intake_service

router = APIRouter(prefix="/reports", tags=["reports"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ReportCreate(BaseModel):
    location: str = Field(min_length=1)
    waste_type: str = Field(min_length=1, max_length=255)
    amount: str = Field(min_length=1, max_length=255)
    image_url: str | None = None
    verification_token: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _report_dict(r: Report) -> dict:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "location": r.location,
        "waste_type": r.waste_type,
        "amount": r.amount,
        "image_url": r.image_url,
        "verification_result": r.verification_result,
        "status": r.status,
        "collector_id": r.collector_id,
        "created_at": r.created_at.date().isoformat() if r.created_at else None,
    }


def _collection_dict(c: CollectedWaste) -> dict:
    return {
        "id": c.id,
        "report_id": c.report_id,
        "collector_id": c.collector_id,
        "collected_at": c.collected_at.isoformat() if c.collected_at else None,
    }


def _read_verification(token: str, user_id: int) -> tuple[str, VerificationResult]:
    """Check a submitted verification token; returns ``(verification_id, result)``."""
    try:
        owner_id, verification_id, result = read_verification(token)
    except InvalidTokenError:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Please verify the waste image before submitting.",
        )
    if owner_id != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Verification belongs to another user")
    return verification_id, result


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/verify")
async def verify_report_image(
    file: UploadFile,
    user_id: int = Depends(get_current_user_id),
    cfg: GeoteraConfig = Depends(get_config),
):
    """Classify an uploaded waste photo."""
    image = await file.read()
    result = await classifier.verify_image(cfg, image, file.content_type or "image/jpeg")
    return {
        "result": result.to_json(),
        "verification_token": sign_verification(user_id, result),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_report(
    body: ReportCreate,
    user_id: int = Depends(get_current_user_id),
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    verification_id, verification = _read_verification(body.verification_token, user_id)
    report = intake_service.submit_report(
        engine,
        cfg,
        user_id=user_id,
        location=body.location,
        waste_type=body.waste_type,
        amount=body.amount,
        image_url=body.image_url,
        verification=verification,
        verification_id=verification_id,
    )
    return {"report": _report_dict(report), "points_earned": cfg.report_points}


@router.get("/recent")
def recent_reports(
    limit: int = Query(10, ge=1, le=100),
    engine=Depends(get_engine),
):
    return {"reports": [_report_dict(r) for r in intake_service.list_recent_reports(engine, limit)]}


@router.get("/tasks")
def collection_tasks(
    task_status: ReportStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    engine=Depends(get_engine),
):
    rows = intake_service.list_collection_tasks(engine, status=task_status, limit=limit)
    return {"tasks": [_report_dict(r) for r in rows]}


@router.post("/{report_id}/collect")
def collect(
    report_id: int,
    user_id: int = Depends(get_current_user_id),
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Confirm pickup of a reported waste pile by the signed-in collector."""
    collected = intake_service.collect_report(
        engine, cfg, report_id=report_id, collector_id=user_id,
    )
    return {"collection": _collection_dict(collected), "points_earned": cfg.collect_points}
