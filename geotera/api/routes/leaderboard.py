"""
geotera.api.routes.leaderboard — Public leaderboard
=====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from geotera.api.deps import get_current_user_id, get_engine
from geotera.constants import RANK_BADGES
from geotera.engine.leaderboard import LeaderboardMetric
from geotera.services import leaderboard_service

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("")
def get_leaderboard(
    metric: LeaderboardMetric = Query(LeaderboardMetric.POINTS),
    limit: int = Query(50, ge=1, le=500),
    engine=Depends(get_engine),
):
    """Users ranked by points, reports or collections."""
    ranked = leaderboard_service.get_leaderboard(engine, metric, limit=limit)
    return {
        "metric": metric.value,
        "entries": [
            {
                "rank": position,
                "badge": RANK_BADGES[position - 1] if position <= len(RANK_BADGES) else None,
                "user_id": row.user_id,
                "user_name": row.user_name or "Anonymous User",
                "points": row.points,
                "level": row.level,
                "report_count": row.report_count,
                "collect_count": row.collect_count,
            }
            for position, row in ranked
        ],
    }


@router.get("/me")
def get_my_rank(
    metric: LeaderboardMetric = Query(LeaderboardMetric.POINTS),
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {
        "metric": metric.value,
        "rank": leaderboard_service.get_user_rank(engine, user_id, metric),
    }
