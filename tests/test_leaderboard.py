"""
tests/test_leaderboard.py — Ranking & Rank Lookup
==================================================
Pure ranking in geotera.engine.leaderboard plus the DB-backed service.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from conftest import make_user
from geotera.engine.leaderboard import UNRANKED, LeaderboardMetric, find_rank, rank
from geotera.services import leaderboard_service, ledger_service


@dataclass
class Row:
    user_id: int
    points: int = 0
    report_count: int = 0
    collect_count: int = 0


class TestRank:
    def test_points_descending_ties_keep_insertion_order(self):
        rows = [Row(1, points=80), Row(2, points=120), Row(3, points=80)]
        assert [r.user_id for r in rank(rows, "points")] == [2, 1, 3]

    def test_reports_metric(self):
        rows = [Row(1, report_count=1), Row(2, report_count=4), Row(3, report_count=2)]
        assert [r.user_id for r in rank(rows, LeaderboardMetric.REPORTS)] == [2, 3, 1]

    def test_collected_metric(self):
        rows = [Row(1, collect_count=3), Row(2, collect_count=0), Row(3, collect_count=3)]
        assert [r.user_id for r in rank(rows, "collected")] == [1, 3, 2]

    def test_does_not_mutate_input(self):
        rows = [Row(1, points=1), Row(2, points=2)]
        rank(rows, "points")
        assert [r.user_id for r in rows] == [1, 2]

    def test_empty(self):
        assert rank([], "points") == []

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            rank([Row(1)], "karma")


class TestFindRank:
    def test_one_based_position(self):
        ranked = rank([Row(1, points=80), Row(2, points=120), Row(3, points=80)], "points")
        assert find_rank(ranked, 2) == 1
        assert find_rank(ranked, 3) == 3

    def test_missing_user_is_unranked(self):
        assert find_rank([Row(1)], 42) == UNRANKED == "unranked"


class TestLeaderboardService:
    @pytest.fixture
    def users(self, db_engine) -> list[int]:
        ids = [
            make_user(db_engine, "u1@example.com", "U1"),
            make_user(db_engine, "u2@example.com", "U2"),
            make_user(db_engine, "u3@example.com", "U3"),
        ]
        for uid, amount in zip(ids, (80, 120, 80)):
            ledger_service.record_earn(
                db_engine, user_id=uid, kind="report", amount=amount, description="seed",
            )
        return ids

    def test_ranks_snapshot_rows(self, db_engine, users):
        board = leaderboard_service.get_leaderboard(db_engine, "points")
        assert [(pos, row.user_id) for pos, row in board] == [
            (1, users[1]), (2, users[0]), (3, users[2]),
        ]
        assert board[0][1].user_name == "U2"

    def test_limit(self, db_engine, users):
        assert len(leaderboard_service.get_leaderboard(db_engine, "points", limit=2)) == 2

    def test_user_rank(self, db_engine, users):
        assert leaderboard_service.get_user_rank(db_engine, users[2]) == 3

    def test_user_without_snapshot_is_unranked(self, db_engine, users):
        newcomer = make_user(db_engine, "new@example.com", "New")
        assert leaderboard_service.get_user_rank(db_engine, newcomer) == "unranked"

    def test_redemption_moves_rank(self, db_engine, users):
        ledger_service.redeem(db_engine, user_id=users[1], reward_ref="badge", cost=100)
        board = leaderboard_service.get_leaderboard(db_engine, "points")
        assert [row.user_id for _, row in board] == [users[0], users[2], users[1]]
