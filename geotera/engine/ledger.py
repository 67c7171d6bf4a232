"""
geotera.engine.ledger — Balance & Snapshot Replay
==================================================

Pure ledger maths.  No DB I/O inside the engine: callers hand in
``(type, amount)`` pairs read from the ``transactions`` table and get
totals back.

Balance rule::

    balance = Σ amount(earned_*) − Σ amount(redeemed)

The *true* balance authorises redemptions.  The *display* balance is the
same value floored at zero and is only ever shown to users.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import asdict, dataclass

from geotera.constants import level_for_points
from geotera.errors import InvalidAmount

__all__ = [
    "EarnKind",
    "LedgerEntry",
    "SnapshotTotals",
    "TransactionType",
    "display_balance",
    "lifetime_earned",
    "replay_snapshot",
    "require_positive",
    "true_balance",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TransactionType(enum.StrEnum):
    """Ledger entry kinds stored in ``transactions.type``."""
    EARNED_REPORT = "earned_report"
    EARNED_COLLECT = "earned_collect"
    REDEEMED = "redeemed"

    @property
    def is_earn(self) -> bool:
        return self.value.startswith("earned")


class EarnKind(enum.StrEnum):
    """What triggered an earn event."""
    REPORT = "report"
    COLLECT = "collect"

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType(f"earned_{self.value}")


# Minimum a replay needs from a Transaction row: (type, amount)
LedgerEntry = tuple[str, int]


# ---------------------------------------------------------------------------
# Snapshot totals
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SnapshotTotals:
    """What a ``rewards`` row should contain for a given ledger."""

    points: int = 0
    level: int = 1
    report_count: int = 0
    collect_count: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def require_positive(amount: object) -> int:
    """Return *amount* if it is a positive int, else raise InvalidAmount."""
    # bool is an int subclass; True is not a points amount
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)
    return amount


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------
def true_balance(entries: Iterable[LedgerEntry]) -> int:
    """Σ earned − Σ redeemed.  May be negative for a corrupt ledger."""
    total = 0
    for tx_type, amount in entries:
        if TransactionType(tx_type).is_earn:
            total += amount
        else:
            total -= amount
    return total


def display_balance(entries: Iterable[LedgerEntry]) -> int:
    """The balance shown to users — :func:`true_balance` floored at zero."""
    return max(true_balance(entries), 0)


def lifetime_earned(entries: Iterable[LedgerEntry]) -> int:
    return sum(amount for tx_type, amount in entries if TransactionType(tx_type).is_earn)


def replay_snapshot(entries: Iterable[LedgerEntry]) -> SnapshotTotals:
    """Rebuild the leaderboard snapshot for one user from their ledger."""
    balance = 0
    earned = 0
    reports = 0
    collects = 0
    for tx_type, amount in entries:
        kind = TransactionType(tx_type)
        if kind is TransactionType.REDEEMED:
            balance -= amount
            continue
        balance += amount
        earned += amount
        if kind is TransactionType.EARNED_REPORT:
            reports += 1
        else:
            collects += 1

    return SnapshotTotals(
        points=balance,
        level=level_for_points(earned),
        report_count=reports,
        collect_count=collects,
    )
