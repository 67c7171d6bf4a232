"""
geotera.services.ledger_service — Points Ledger Persistence
============================================================

Shared service module callable by the API and the intake service.
Appends ledger entries, authorises redemptions, and keeps the reward
snapshot in step with the ledger.

Balance is never stored.  It is re-derived from ``transactions`` inside
the same DB transaction that appends a new entry.

Per-user serialisation of redemptions:
  1. ``SELECT … FOR UPDATE`` on the user row (PostgreSQL row lock).
  2. Read the true balance and authorise the cost.
  3. Append the ``redeemed`` row and update the snapshot.
  4. ``UPDATE users SET ledger_version = v + 1 WHERE ledger_version = v``.
     Zero rows updated means another writer got in first: roll back and
     retry from step 1.

Step 4 is what makes the check-then-act safe on backends without row
locks (SQLite) and across independent processes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from geotera.constants import CASHOUT_DESCRIPTION, CASHOUT_REF, level_for_points
from geotera.database.models import RedeemableReward, Reward, Transaction
from geotera.engine.ledger import (
    EarnKind,
    TransactionType,
    lifetime_earned,
    require_positive,
    true_balance,
)
from geotera.errors import (
    InsufficientBalance,
    NothingToRedeem,
    PersistenceUnavailable,
    RewardNotFound,
)
from geotera.services import reconciliation_service
from geotera.services.ledger_guard import (
    LostRace,
    bump_version,
    compare_and_swap_version,
    lock_user,
    persistence_errors,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _ledger_sums(session: Session, user_id: int) -> list[tuple[str, int]]:
    """Σ amount per transaction type for one user."""
    rows = session.execute(
        select(
            Transaction.type,
            func.coalesce(func.sum(Transaction.amount), 0).label("total"),
        )
        .where(Transaction.user_id == user_id)
        .group_by(Transaction.type)
    ).all()
    return [(row.type, int(row.total)) for row in rows]


def ledger_balance(session: Session, user_id: int) -> int:
    """True (unfloored) balance for *user_id* as seen by *session*."""
    return true_balance(_ledger_sums(session, user_id))


def _append(
    session: Session,
    *,
    user_id: int,
    tx_type: TransactionType,
    amount: int,
    description: str,
) -> Transaction:
    tx = Transaction(
        user_id=user_id,
        type=tx_type.value,
        amount=amount,
        description=description,
    )
    session.add(tx)
    session.flush()
    return tx


def _apply_to_snapshot(
    session: Session,
    user_id: int,
    *,
    tx_type: TransactionType,
    amount: int,
) -> Reward:
    """Incrementally update the user's reward snapshot for one new entry,
    then verify it against the replayed ledger."""
    reward = session.scalar(select(Reward).where(Reward.user_id == user_id))
    if reward is None:
        reward = Reward(
            user_id=user_id, points=0, level=1, report_count=0, collect_count=0,
        )
        session.add(reward)

    if tx_type is TransactionType.REDEEMED:
        reward.points -= amount
    else:
        reward.points += amount
        if tx_type is TransactionType.EARNED_REPORT:
            reward.report_count += 1
        else:
            reward.collect_count += 1
    reward.level = level_for_points(lifetime_earned(_ledger_sums(session, user_id)))
    session.flush()

    reconciliation_service.reconcile_user(session, user_id)
    return reward


def _detach(session: Session, tx: Transaction) -> Transaction:
    session.refresh(tx)
    session.expunge(tx)
    return tx


# ---------------------------------------------------------------------------
# Earn
# ---------------------------------------------------------------------------
def append_earn(
    session: Session,
    *,
    user_id: int,
    kind: EarnKind | str,
    amount: int,
    description: str,
) -> Transaction:
    """Append an earn entry inside the caller's transaction.

    Used by the intake service so the report/collection row and its earn
    entry commit or roll back together.  The caller commits.
    """
    require_positive(amount)
    tx_type = EarnKind(kind).transaction_type

    lock_user(session, user_id)
    tx = _append(
        session, user_id=user_id, tx_type=tx_type, amount=amount, description=description,
    )
    _apply_to_snapshot(session, user_id, tx_type=tx_type, amount=amount)
    bump_version(session, user_id)
    return tx


def record_earn(
    engine: Engine,
    *,
    user_id: int,
    kind: EarnKind | str,
    amount: int,
    description: str,
) -> Transaction:
    """Append an ``earned_report`` / ``earned_collect`` entry and update the
    user's reward snapshot.  Returns the detached Transaction row."""
    with persistence_errors("record earned points"):
        with Session(engine, expire_on_commit=False) as session:
            tx = append_earn(
                session, user_id=user_id, kind=kind, amount=amount, description=description,
            )
            session.commit()
            logger.info("User %s earned %d points (%s)", user_id, amount, tx.type)
            return _detach(session, tx)


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------
def get_true_balance(engine: Engine, user_id: int) -> int:
    """Unfloored balance, for audit.  Never negative on a healthy ledger."""
    with persistence_errors("read the balance"):
        with Session(engine) as session:
            return ledger_balance(session, user_id)


def get_balance(engine: Engine, user_id: int) -> int:
    """Display balance: Σ earned − Σ redeemed, floored at zero."""
    return max(get_true_balance(engine, user_id), 0)


def list_transactions(
    engine: Engine, user_id: int, *, limit: int | None = None,
) -> list[Transaction]:
    """Ledger entries for *user_id*, newest first."""
    with persistence_errors("read transactions"):
        with Session(engine) as session:
            query = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            rows = list(session.scalars(query).all())
            for row in rows:
                session.expunge(row)
            return rows


# ---------------------------------------------------------------------------
# Redeem
# ---------------------------------------------------------------------------
def _redeem_once(
    session: Session,
    *,
    user_id: int,
    reward_ref: str,
    cost: int | None,
    description: str,
) -> Transaction:
    """One attempt at an authorised redemption.  ``cost=None`` redeems the
    whole balance (cash-out)."""
    user = lock_user(session, user_id)
    seen_version = user.ledger_version
    balance = ledger_balance(session, user_id)

    if cost is None:
        if balance <= 0:
            raise NothingToRedeem(user_id)
        cost = balance
    elif cost > balance:
        raise InsufficientBalance(user_id, balance, cost)

    tx = _append(
        session,
        user_id=user_id,
        tx_type=TransactionType.REDEEMED,
        amount=cost,
        description=description,
    )
    _apply_to_snapshot(session, user_id, tx_type=TransactionType.REDEEMED, amount=cost)
    compare_and_swap_version(session, user_id, seen_version)
    logger.debug("User %s redeemed %d for %s (v%d)", user_id, cost, reward_ref, seen_version)
    return tx


def _redeem_with_retry(
    engine: Engine,
    *,
    user_id: int,
    reward_ref: str,
    cost: int | None,
    description: str,
    max_attempts: int,
) -> Transaction:
    for attempt in range(1, max_attempts + 1):
        with persistence_errors("redeem points"):
            with Session(engine, expire_on_commit=False) as session:
                try:
                    tx = _redeem_once(
                        session,
                        user_id=user_id,
                        reward_ref=reward_ref,
                        cost=cost,
                        description=description,
                    )
                except LostRace:
                    session.rollback()
                    logger.warning(
                        "Concurrent ledger write for user %s; retrying redemption "
                        "(attempt %d/%d)",
                        user_id, attempt, max_attempts,
                    )
                    continue
                session.commit()
                logger.info(
                    "User %s redeemed %d points (%s)", user_id, tx.amount, reward_ref,
                )
                return _detach(session, tx)

    raise PersistenceUnavailable(
        f"Redemption for user {user_id} kept conflicting with concurrent "
        f"writes after {max_attempts} attempts; please retry."
    )


def redeem(
    engine: Engine,
    *,
    user_id: int,
    reward_ref: str,
    cost: int,
    description: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Transaction:
    """Spend *cost* points on *reward_ref*.

    Raises
    ------
    InsufficientBalance
        *cost* exceeds the true balance.  Nothing is written.
    InvalidAmount
        *cost* is not a positive integer.
    UserNotFound
    PersistenceUnavailable
    """
    require_positive(cost)
    return _redeem_with_retry(
        engine,
        user_id=user_id,
        reward_ref=reward_ref,
        cost=cost,
        description=description or f"Redeemed {reward_ref}",
        max_attempts=max_attempts,
    )


def cash_out_all(
    engine: Engine,
    *,
    user_id: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Transaction:
    """Redeem the user's entire balance in one entry.

    Raises
    ------
    NothingToRedeem
        The balance is zero.  Nothing is written.
    """
    return _redeem_with_retry(
        engine,
        user_id=user_id,
        reward_ref=CASHOUT_REF,
        cost=None,
        description=CASHOUT_DESCRIPTION,
        max_attempts=max_attempts,
    )


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
def list_catalog(engine: Engine) -> list[RedeemableReward]:
    """All catalogue entries, cheapest first."""
    with persistence_errors("read the reward catalogue"):
        with Session(engine) as session:
            rows = list(session.scalars(
                select(RedeemableReward).order_by(RedeemableReward.cost, RedeemableReward.id)
            ).all())
            for row in rows:
                session.expunge(row)
            return rows


def redeem_catalog(
    engine: Engine,
    *,
    user_id: int,
    slug: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> tuple[Transaction, RedeemableReward]:
    """Redeem a catalogue entry by slug at its listed cost."""
    with persistence_errors("read the reward catalogue"):
        with Session(engine, expire_on_commit=False) as session:
            item = session.scalar(
                select(RedeemableReward).where(RedeemableReward.slug == slug)
            )
            if item is None:
                raise RewardNotFound(slug)
            session.expunge(item)

    tx = redeem(
        engine,
        user_id=user_id,
        reward_ref=item.slug,
        cost=item.cost,
        description=f"Redeemed {item.name}",
        max_attempts=max_attempts,
    )
    return tx, item
