"""
tests/test_intake_service.py — Report Submission & Collection
==============================================================
Each accepted report and each confirmed collection earns exactly once,
in the same transaction as the row that justifies it.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conftest import make_user
from geotera.database.models import CollectedWaste, Report, Transaction
from geotera.engine.verification import VerificationResult
from geotera.errors import (
    ReportAlreadyCollected,
    ReportNotFound,
    UserNotFound,
    VerificationAlreadyUsed,
    VerificationFailed,
)
from geotera.services import intake_service, ledger_service

VERIFIED = VerificationResult(waste_type="plastic", quantity="2 kg", confidence=0.9)


@pytest.fixture
def engine(db_engine):
    return db_engine


def _count(engine, model) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model))


def _submit(engine, cfg, user_id: int, verification=VERIFIED, verification_id=None) -> Report:
    return intake_service.submit_report(
        engine,
        cfg,
        user_id=user_id,
        location="Riverside Park",
        waste_type="plastic",
        amount="2 kg",
        verification=verification,
        verification_id=verification_id,
    )


class TestSubmitReport:
    def test_persists_report_and_earns(self, engine, cfg):
        user_id = make_user(engine)
        report = _submit(engine, cfg, user_id)

        assert report.id is not None
        assert report.status == "pending"
        assert report.verification_result == {
            "wasteType": "plastic", "quantity": "2 kg", "confidence": 0.9,
        }
        assert ledger_service.get_balance(engine, user_id) == cfg.report_points

        txs = ledger_service.list_transactions(engine, user_id)
        assert [(t.type, t.amount) for t in txs] == [("earned_report", 10)]

    def test_requires_verification(self, engine, cfg):
        user_id = make_user(engine)
        with pytest.raises(VerificationFailed):
            _submit(engine, cfg, user_id, verification=None)
        assert _count(engine, Report) == 0
        assert _count(engine, Transaction) == 0

    def test_rejects_low_confidence(self, engine, cfg):
        user_id = make_user(engine)
        shaky = VerificationResult(waste_type="plastic", quantity="2 kg", confidence=0.2)
        with pytest.raises(VerificationFailed, match="below"):
            _submit(engine, cfg, user_id, verification=shaky)
        assert ledger_service.get_balance(engine, user_id) == 0

    def test_unknown_user_rolls_back_report(self, engine, cfg):
        with pytest.raises(UserNotFound):
            _submit(engine, cfg, 999)
        assert _count(engine, Report) == 0


class TestSingleUseVerification:
    def test_second_submit_with_same_verification_refused(self, engine, cfg):
        user_id = make_user(engine)
        _submit(engine, cfg, user_id, verification_id="a1b2")

        for _ in range(4):
            with pytest.raises(VerificationAlreadyUsed):
                _submit(engine, cfg, user_id, verification_id="a1b2")

        assert _count(engine, Report) == 1
        assert _count(engine, Transaction) == 1
        assert ledger_service.get_balance(engine, user_id) == cfg.report_points

    def test_refused_across_users(self, engine, cfg):
        ada = make_user(engine)
        eve = make_user(engine, "eve@example.com", "Eve")
        _submit(engine, cfg, ada, verification_id="a1b2")

        with pytest.raises(VerificationAlreadyUsed):
            _submit(engine, cfg, eve, verification_id="a1b2")
        assert ledger_service.get_balance(engine, eve) == 0

    def test_distinct_verifications_each_earn(self, engine, cfg):
        user_id = make_user(engine)
        _submit(engine, cfg, user_id, verification_id="first")
        _submit(engine, cfg, user_id, verification_id="second")
        assert ledger_service.get_balance(engine, user_id) == 2 * cfg.report_points

    def test_store_enforces_uniqueness(self, engine):
        user_id = make_user(engine)
        with Session(engine) as session:
            for _ in range(2):
                session.add(Report(
                    user_id=user_id, location="x", waste_type="glass",
                    amount="1 kg", verification_id="dup",
                ))
            with pytest.raises(IntegrityError):
                session.flush()


class TestCollectReport:
    def test_collect_marks_and_earns_for_collector(self, engine, cfg):
        reporter = make_user(engine)
        collector = make_user(engine, "col@example.com", "Col")
        report = _submit(engine, cfg, reporter)

        collected = intake_service.collect_report(
            engine, cfg, report_id=report.id, collector_id=collector,
        )

        assert collected.report_id == report.id
        assert collected.collector_id == collector
        assert ledger_service.get_balance(engine, collector) == cfg.collect_points
        assert ledger_service.get_balance(engine, reporter) == cfg.report_points
        with Session(engine) as session:
            stored = session.get(Report, report.id)
            assert stored.status == "collected"
            assert stored.collector_id == collector

    def test_second_collection_earns_nothing(self, engine, cfg):
        reporter = make_user(engine)
        collector = make_user(engine, "col@example.com", "Col")
        report = _submit(engine, cfg, reporter)
        intake_service.collect_report(engine, cfg, report_id=report.id, collector_id=collector)

        with pytest.raises(ReportAlreadyCollected):
            intake_service.collect_report(
                engine, cfg, report_id=report.id, collector_id=collector,
            )
        assert ledger_service.get_balance(engine, collector) == cfg.collect_points
        assert _count(engine, CollectedWaste) == 1

    def test_unknown_report(self, engine, cfg):
        collector = make_user(engine)
        with pytest.raises(ReportNotFound):
            intake_service.collect_report(engine, cfg, report_id=404, collector_id=collector)


class TestReads:
    def test_tasks_filter_by_status(self, engine, cfg):
        user_id = make_user(engine)
        first = _submit(engine, cfg, user_id)
        second = _submit(engine, cfg, user_id)
        intake_service.collect_report(engine, cfg, report_id=first.id, collector_id=user_id)

        pending = intake_service.list_collection_tasks(engine, status="pending")
        collected = intake_service.list_collection_tasks(engine, status="collected")
        assert [r.id for r in pending] == [second.id]
        assert [r.id for r in collected] == [first.id]
        assert len(intake_service.list_collection_tasks(engine)) == 2

    def test_recent_reports_newest_first(self, engine, cfg):
        user_id = make_user(engine)
        ids = [_submit(engine, cfg, user_id).id for _ in range(3)]
        recent = intake_service.list_recent_reports(engine, limit=2)
        assert [r.id for r in recent] == [ids[2], ids[1]]

    def test_per_user_history(self, engine, cfg):
        reporter = make_user(engine)
        collector = make_user(engine, "col@example.com", "Col")
        report = _submit(engine, cfg, reporter)
        intake_service.collect_report(engine, cfg, report_id=report.id, collector_id=collector)

        assert [r.id for r in intake_service.reports_by_user(engine, reporter)] == [report.id]
        assert intake_service.reports_by_user(engine, collector) == []
        assert len(intake_service.collections_by_collector(engine, collector)) == 1
