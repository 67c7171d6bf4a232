"""
geotera.services.impact_service — Home-Page Impact Figures
===========================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from geotera.constants import DEFAULT_COLLECTION_KG
from geotera.database.models import CollectedWaste, Report, ReportStatus, Reward
from geotera.engine.impact import Impact, co2_offset, summarize
from geotera.services.ledger_service import ledger_balance

if TYPE_CHECKING:
    from sqlalchemy import Engine


def community_impact(engine: Engine) -> Impact:
    """Totals across every user: collected waste, reports, points awarded."""
    with Session(engine) as session:
        amounts = session.scalars(
            select(Report.amount).where(Report.status == ReportStatus.COLLECTED.value)
        ).all()
        reports = session.scalar(select(func.count()).select_from(Report)) or 0
        tokens = session.scalar(select(func.coalesce(func.sum(Reward.points), 0))) or 0
    return summarize(amounts, reports_submitted=reports, tokens_earned=int(tokens))


def user_impact(engine: Engine, user_id: int) -> dict:
    """One user's balance, reports submitted and estimated collected waste."""
    with Session(engine) as session:
        reports = session.scalar(
            select(func.count()).select_from(Report).where(Report.user_id == user_id)
        ) or 0
        collections = session.scalar(
            select(func.count())
            .select_from(CollectedWaste)
            .where(CollectedWaste.collector_id == user_id)
        ) or 0
        balance = max(ledger_balance(session, user_id), 0)

    waste = collections * DEFAULT_COLLECTION_KG
    return {
        "balance": balance,
        "reports_submitted": reports,
        "waste_collected_kg": waste,
        "co2_offset_kg": co2_offset(waste),
    }
