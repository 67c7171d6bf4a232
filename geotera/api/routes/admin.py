"""
geotera.api.routes.admin — Admin maintenance endpoints (JWT‑protected)
========================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from geotera.api.deps import get_config, get_current_admin, get_engine
from geotera.config import GeoteraConfig
from geotera.services import ledger_service, reconciliation_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/reconcile")
def reconcile(
    admin: dict = Depends(get_current_admin),
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Rebuild drifted reward snapshots from the ledger."""
    logger.info("Snapshot reconciliation requested by %s", admin.get("email", admin.get("sub")))
    return reconciliation_service.reconcile_snapshots(
        engine, max_attempts=cfg.redeem_max_attempts,
    )


@router.get("/users/{user_id}/balance")
def audit_balance(
    user_id: int,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    """Unfloored and display balance for one user."""
    true_balance = ledger_service.get_true_balance(engine, user_id)
    return {
        "user_id": user_id,
        "true_balance": true_balance,
        "balance": max(true_balance, 0),
    }
