"""
geotera.engine.leaderboard — Leaderboard Ranking
=================================================

Pure ranking over reward snapshot rows.  Works on anything exposing
``user_id``, ``points``, ``report_count`` and ``collect_count`` attributes
(ORM :class:`~geotera.database.models.Reward` rows or plain dataclasses).

Ties keep insertion order: :func:`sorted` is stable, including with
``reverse=True``, and no secondary key is applied.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from typing import Final, Literal, Protocol, TypeVar

__all__ = ["LeaderboardMetric", "UNRANKED", "find_rank", "rank"]

UNRANKED: Final = "unranked"


class RankedRow(Protocol):
    user_id: int
    points: int
    report_count: int
    collect_count: int


R = TypeVar("R", bound=RankedRow)


class LeaderboardMetric(enum.StrEnum):
    """Sort metrics offered by the leaderboard."""
    POINTS = "points"
    REPORTS = "reports"
    COLLECTED = "collected"

    @property
    def field(self) -> str:
        """Snapshot attribute this metric sorts on."""
        return _METRIC_FIELDS[self]


_METRIC_FIELDS: dict[LeaderboardMetric, str] = {
    LeaderboardMetric.POINTS: "points",
    LeaderboardMetric.REPORTS: "report_count",
    LeaderboardMetric.COLLECTED: "collect_count",
}


def rank(rewards: Sequence[R], metric: LeaderboardMetric | str) -> list[R]:
    """Return *rewards* sorted descending by *metric*.

    Raises
    ------
    ValueError
        If *metric* is not one of ``points``, ``reports``, ``collected``.
    """
    field = LeaderboardMetric(metric).field
    return sorted(rewards, key=lambda r: getattr(r, field), reverse=True)


def find_rank(ranked: Sequence[RankedRow], user_id: int) -> int | Literal["unranked"]:
    """1-based position of *user_id* in *ranked*, or ``"unranked"``."""
    for position, row in enumerate(ranked, start=1):
        if row.user_id == user_id:
            return position
    return UNRANKED
