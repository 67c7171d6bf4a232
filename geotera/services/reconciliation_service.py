"""
geotera.services.reconciliation_service — Reward Snapshot Reconciliation
=========================================================================

The ``rewards`` table is a materialised view of ``transactions``: it exists
so the leaderboard can sort without aggregating the whole ledger.  It must
never drift permanently from the ledger.

How it works:
    1. Replay the user's ``(type, amount)`` rows through
       :func:`~geotera.engine.ledger.replay_snapshot`.
    2. Compare against the stored ``rewards`` row.
    3. On mismatch raise/record :class:`~geotera.errors.ReconciliationMismatch`,
       overwrite the row with the replayed totals, and log the correction.

:func:`reconcile_user` runs inside every ledger append, under the lock the
append already holds.  The full sweep :func:`reconcile_snapshots` is exposed
to admins for audits and repairs and checks one user per transaction under
the same guard.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from geotera.database.engine import get_session
from geotera.database.models import Reward, Transaction
from geotera.engine.ledger import LedgerEntry, SnapshotTotals, replay_snapshot
from geotera.errors import PersistenceUnavailable, ReconciliationMismatch
from geotera.services.ledger_guard import (
    LostRace,
    compare_and_swap_version,
    lock_user,
    persistence_errors,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def ledger_entries(session: Session, user_id: int) -> list[LedgerEntry]:
    """All ``(type, amount)`` pairs for *user_id*, oldest first."""
    rows = session.execute(
        select(Transaction.type, Transaction.amount)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.id)
    ).all()
    return [(row.type, row.amount) for row in rows]


def _stored_totals(reward: Reward | None) -> SnapshotTotals | None:
    if reward is None:
        return None
    return SnapshotTotals(
        points=reward.points,
        level=reward.level,
        report_count=reward.report_count,
        collect_count=reward.collect_count,
    )


def check_snapshot(session: Session, user_id: int) -> SnapshotTotals:
    """Return the replayed totals for *user_id*.

    Raises
    ------
    ReconciliationMismatch
        If the stored snapshot differs from the replay, or is missing while
        the user has ledger entries.
    """
    entries = ledger_entries(session, user_id)
    actual = replay_snapshot(entries)
    reward = session.scalar(select(Reward).where(Reward.user_id == user_id))
    stored = _stored_totals(reward)

    if stored is None:
        if entries:
            raise ReconciliationMismatch(user_id, None, actual.as_dict())
        return actual
    if stored != actual:
        raise ReconciliationMismatch(user_id, stored.as_dict(), actual.as_dict())
    return actual


def _write_snapshot(session: Session, user_id: int, totals: SnapshotTotals) -> None:
    reward = session.scalar(select(Reward).where(Reward.user_id == user_id))
    if reward is None:
        reward = Reward(user_id=user_id)
        session.add(reward)
    reward.points = totals.points
    reward.level = totals.level
    reward.report_count = totals.report_count
    reward.collect_count = totals.collect_count
    session.flush()


def reconcile_user(session: Session, user_id: int) -> ReconciliationMismatch | None:
    """Verify one user's snapshot and rebuild it from the ledger on drift.

    Runs inside the caller's transaction; the caller commits.  Returns the
    mismatch that was corrected, or ``None`` when the snapshot was correct.
    """
    try:
        check_snapshot(session, user_id)
    except ReconciliationMismatch as mismatch:
        logger.warning("%s — rebuilding from ledger", mismatch)
        _write_snapshot(session, user_id, SnapshotTotals(**mismatch.actual))
        return mismatch
    return None


def _reconcile_serialised(
    engine: Engine, user_id: int, *, max_attempts: int,
) -> ReconciliationMismatch | None:
    """Run :func:`reconcile_user` for one user in its own transaction.

    Runs outside any ledger append, so it takes the same per-user guard as
    a redemption: the row lock, then a ``ledger_version`` compare-and-swap
    before a correction is committed.  A correction computed from a ledger
    that changed underneath it is rolled back and recomputed.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            with persistence_errors("reconcile reward snapshots"):
                with get_session(engine) as session:
                    seen = lock_user(session, user_id).ledger_version
                    mismatch = reconcile_user(session, user_id)
                    if mismatch is not None:
                        compare_and_swap_version(session, user_id, seen)
            return mismatch
        except LostRace:
            logger.warning(
                "Ledger for user %s changed during reconciliation; rechecking "
                "(attempt %d/%d)",
                user_id, attempt, max_attempts,
            )

    raise PersistenceUnavailable(
        f"Reconciliation for user {user_id} kept conflicting with concurrent "
        f"writes after {max_attempts} attempts; please retry."
    )


def reconcile_snapshots(engine: Engine, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> dict:
    """Validate every reward snapshot against the ledger and fix drift.

    Each user is checked under the per-user ledger guard, so a concurrent
    redemption can never be mistaken for drift.

    Returns ``{"checked": N, "corrected": M, "corrections": [...]}``.
    """
    corrections: list[dict] = []

    with persistence_errors("list reward snapshots"):
        with Session(engine) as session:
            user_ids = set(session.scalars(select(Transaction.user_id).distinct()).all())
            user_ids |= set(session.scalars(select(Reward.user_id)).all())

    for user_id in sorted(user_ids):
        mismatch = _reconcile_serialised(engine, user_id, max_attempts=max_attempts)
        if mismatch is not None:
            corrections.append({
                "user_id": user_id,
                "stored": mismatch.stored,
                "actual": mismatch.actual,
            })

    checked = len(user_ids)
    if corrections:
        logger.warning(
            "Snapshot reconciliation: corrected %d/%d snapshots: %s",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Snapshot reconciliation: all %d snapshots match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections),
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
