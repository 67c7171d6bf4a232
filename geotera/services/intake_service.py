"""
geotera.services.intake_service — Report Submission & Collection
=================================================================

The only caller of earn events.  Each accepted report and each confirmed
collection appends exactly one earn entry, in the same DB transaction as
the row that justifies it:

* ``submit_report``  → Report row       + ``earned_report``  for the reporter
* ``collect_report`` → CollectedWaste row + ``earned_collect`` for the collector

Nothing is earned speculatively: a report needs a validated
:class:`~geotera.engine.verification.VerificationResult` before any row
is written.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geotera.database.models import CollectedWaste, Report, ReportStatus
from geotera.engine.ledger import EarnKind
from geotera.errors import (
    ReportAlreadyCollected,
    ReportNotFound,
    VerificationAlreadyUsed,
    VerificationFailed,
)
from geotera.services import ledger_service
from geotera.services.ledger_guard import lock_user, persistence_errors

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from geotera.config import GeoteraConfig
    from geotera.engine.verification import VerificationResult

logger = logging.getLogger(__name__)


def submit_report(
    engine: Engine,
    cfg: GeoteraConfig,
    *,
    user_id: int,
    location: str,
    waste_type: str,
    amount: str,
    verification: VerificationResult | None,
    verification_id: str | None = None,
    image_url: str | None = None,
) -> Report:
    """Persist a verified report and credit the reporter.

    *verification_id* identifies the verification the report is submitted
    with.  Each id is accepted for one report only.

    Raises
    ------
    VerificationFailed
        No verification result, or one below ``cfg.min_confidence``.
    VerificationAlreadyUsed
        A report was already accepted for *verification_id*.
    UserNotFound
    """
    if verification is None:
        raise VerificationFailed("Please verify the waste image before submitting.")
    if verification.confidence < cfg.min_confidence:
        raise VerificationFailed(
            f"Confidence {verification.confidence:.2f} is below the "
            f"{cfg.min_confidence:.2f} threshold"
        )

    with persistence_errors("submit the report"):
        with Session(engine, expire_on_commit=False) as session:
            lock_user(session, user_id)
            if verification_id is not None and session.scalar(
                select(Report.id).where(Report.verification_id == verification_id)
            ) is not None:
                raise VerificationAlreadyUsed(verification_id)

            report = Report(
                user_id=user_id,
                location=location,
                waste_type=waste_type,
                amount=amount,
                image_url=image_url,
                verification_result=verification.to_json(),
                verification_id=verification_id,
                status=ReportStatus.PENDING.value,
            )
            session.add(report)
            try:
                session.flush()
            except IntegrityError as exc:
                # A concurrent submit with the same verification won the insert
                raise VerificationAlreadyUsed(verification_id) from exc

            ledger_service.append_earn(
                session,
                user_id=user_id,
                kind=EarnKind.REPORT,
                amount=cfg.report_points,
                description=f"Points earned for reporting {waste_type} waste",
            )
            session.commit()
            session.refresh(report)
            session.expunge(report)

    logger.info("Report %s accepted from user %s", report.id, user_id)
    return report


def collect_report(
    engine: Engine,
    cfg: GeoteraConfig,
    *,
    report_id: int,
    collector_id: int,
) -> CollectedWaste:
    """Mark a pending report collected and credit the collector once.

    Raises
    ------
    ReportNotFound
    ReportAlreadyCollected
        The report was collected earlier, possibly by a concurrent request.
    """
    with persistence_errors("record the collection"):
        with Session(engine, expire_on_commit=False) as session:
            report = session.get(Report, report_id)
            if report is None:
                raise ReportNotFound(report_id)

            # Conditional update: only one request can move pending → collected
            result = session.execute(
                update(Report)
                .where(Report.id == report_id, Report.status == ReportStatus.PENDING.value)
                .values(status=ReportStatus.COLLECTED.value, collector_id=collector_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ReportAlreadyCollected(report_id)

            collected = CollectedWaste(report_id=report_id, collector_id=collector_id)
            session.add(collected)
            session.flush()

            ledger_service.append_earn(
                session,
                user_id=collector_id,
                kind=EarnKind.COLLECT,
                amount=cfg.collect_points,
                description=f"Points earned for collecting {report.waste_type} waste",
            )
            session.commit()
            session.refresh(collected)
            session.expunge(collected)

    logger.info("Report %s collected by user %s", report_id, collector_id)
    return collected


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _detached(session: Session, query) -> list:
    rows = list(session.scalars(query).all())
    for row in rows:
        session.expunge(row)
    return rows


def list_recent_reports(engine: Engine, limit: int = 10) -> list[Report]:
    with Session(engine) as session:
        return _detached(
            session,
            select(Report).order_by(Report.created_at.desc(), Report.id.desc()).limit(limit),
        )


def list_collection_tasks(
    engine: Engine,
    *,
    status: ReportStatus | str | None = None,
    limit: int = 20,
) -> list[Report]:
    """Reports as collection tasks, newest first, optionally by status."""
    query = select(Report).order_by(Report.created_at.desc(), Report.id.desc()).limit(limit)
    if status is not None:
        query = query.where(Report.status == ReportStatus(status).value)
    with Session(engine) as session:
        return _detached(session, query)


def reports_by_user(engine: Engine, user_id: int) -> list[Report]:
    with Session(engine) as session:
        return _detached(
            session,
            select(Report).where(Report.user_id == user_id).order_by(Report.id.desc()),
        )


def collections_by_collector(engine: Engine, collector_id: int) -> list[CollectedWaste]:
    with Session(engine) as session:
        return _detached(
            session,
            select(CollectedWaste)
            .where(CollectedWaste.collector_id == collector_id)
            .order_by(CollectedWaste.id.desc()),
        )
