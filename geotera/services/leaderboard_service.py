"""
geotera.services.leaderboard_service — Leaderboard Reads
=========================================================

Loads reward snapshot rows in insertion order and hands them to the pure
ranking in :mod:`geotera.engine.leaderboard`.  Reads never go through the
ledger; snapshots are kept honest by the reconciliation service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from geotera.database.models import Reward, User
from geotera.engine.leaderboard import LeaderboardMetric, find_rank, rank

if TYPE_CHECKING:
    from sqlalchemy import Engine


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    user_id: int
    user_name: str | None
    points: int
    level: int
    report_count: int
    collect_count: int


def _load_rows(session: Session) -> list[LeaderboardRow]:
    rows = session.execute(
        select(Reward, User.name)
        .join(User, User.id == Reward.user_id)
        .order_by(Reward.id)
    ).all()
    return [
        LeaderboardRow(
            user_id=reward.user_id,
            user_name=name,
            points=reward.points,
            level=reward.level,
            report_count=reward.report_count,
            collect_count=reward.collect_count,
        )
        for reward, name in rows
    ]


def get_leaderboard(
    engine: Engine,
    metric: LeaderboardMetric | str = LeaderboardMetric.POINTS,
    *,
    limit: int | None = None,
) -> list[tuple[int, LeaderboardRow]]:
    """Return ``[(rank, row), …]`` sorted by *metric*."""
    with Session(engine) as session:
        ranked = rank(_load_rows(session), metric)
    if limit is not None:
        ranked = ranked[:limit]
    return list(enumerate(ranked, start=1))


def get_user_rank(
    engine: Engine,
    user_id: int,
    metric: LeaderboardMetric | str = LeaderboardMetric.POINTS,
) -> int | Literal["unranked"]:
    """1-based position of *user_id*, or ``"unranked"`` without a snapshot."""
    with Session(engine) as session:
        ranked = rank(_load_rows(session), metric)
    return find_rank(ranked, user_id)
