"""
geotera.api.routes.rewards — Balance, ledger history & redemption
===================================================================

Ledger errors (insufficient balance, nothing to cash out) are turned into
4xx responses by the exception handler in :mod:`geotera.api.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from geotera.api.deps import get_config, get_current_user_id, get_engine
from geotera.config import GeoteraConfig
from geotera.database.models import RedeemableReward, Transaction
from geotera.services import ledger_service

router = APIRouter(tags=["rewards"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RedeemRequest(BaseModel):
    reward: str  # catalogue slug, e.g. "tree"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _tx_dict(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "type": tx.type,
        "amount": tx.amount,
        "description": tx.description,
        "date": tx.created_at.date().isoformat() if tx.created_at else None,
    }


def _catalog_dict(item: RedeemableReward) -> dict:
    return {
        "id": item.id,
        "slug": item.slug,
        "name": item.name,
        "cost": item.cost,
        "description": item.description,
        "collection_info": item.collection_info,
    }


# ---------------------------------------------------------------------------
# Balance & history
# ---------------------------------------------------------------------------
@router.get("/me/balance")
def get_balance(user_id: int = Depends(get_current_user_id), engine=Depends(get_engine)):
    return {"balance": ledger_service.get_balance(engine, user_id)}


@router.get("/me/transactions")
def get_transactions(
    limit: int = Query(50, ge=1, le=500),
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    rows = ledger_service.list_transactions(engine, user_id, limit=limit)
    return {"transactions": [_tx_dict(tx) for tx in rows]}


# ---------------------------------------------------------------------------
# Catalogue & redemption
# ---------------------------------------------------------------------------
@router.get("/rewards/catalog")
def get_catalog(engine=Depends(get_engine)):
    return {"rewards": [_catalog_dict(r) for r in ledger_service.list_catalog(engine)]}


@router.post("/rewards/redeem")
def redeem(
    body: RedeemRequest,
    user_id: int = Depends(get_current_user_id),
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Redeem a catalogue reward at its listed cost."""
    tx, item = ledger_service.redeem_catalog(
        engine, user_id=user_id, slug=body.reward, max_attempts=cfg.redeem_max_attempts,
    )
    return {
        "transaction": _tx_dict(tx),
        "reward": _catalog_dict(item),
        "balance": ledger_service.get_balance(engine, user_id),
    }


@router.post("/rewards/cashout")
def cash_out(
    user_id: int = Depends(get_current_user_id),
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Redeem the whole balance at once."""
    tx = ledger_service.cash_out_all(
        engine, user_id=user_id, max_attempts=cfg.redeem_max_attempts,
    )
    return {
        "transaction": _tx_dict(tx),
        "message": f"Successfully processed withdrawal for {tx.amount} points.",
        "balance": ledger_service.get_balance(engine, user_id),
    }
