"""
geotera.errors — Domain Error Taxonomy
=======================================

Every failure a caller must react to is a subclass of :class:`GeoteraError`.
Services raise these; the API layer maps them onto HTTP status codes in
:mod:`geotera.api.main`.

Hierarchy::

    GeoteraError
    ├── LedgerError
    │   ├── InsufficientBalance   # redeem cost > true balance
    │   ├── NothingToRedeem       # cash-out with zero balance
    │   ├── InvalidAmount         # non-positive / non-integer amount
    │   ├── RewardNotFound        # unknown catalogue slug
    │   └── UserNotFound
    ├── IntakeError
    │   ├── VerificationFailed
    │   ├── ReportNotFound
    │   ├── ReportAlreadyCollected
    │   └── VerificationAlreadyUsed  # one report per classifier verdict
    ├── PersistenceUnavailable    # store read/write failed, retryable
    └── ReconciliationMismatch    # snapshot disagrees with the ledger
"""

from __future__ import annotations


class GeoteraError(Exception):
    """Base class for all domain errors."""


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
class LedgerError(GeoteraError):
    """A ledger operation was refused.  No rows were written."""


class InsufficientBalance(LedgerError):
    def __init__(self, user_id: int, balance: int, cost: int) -> None:
        self.user_id = user_id
        self.balance = balance
        self.cost = cost
        super().__init__(
            f"You need {cost} points but only have {max(balance, 0)} points."
        )


class NothingToRedeem(LedgerError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__("No points available to cash out")


class InvalidAmount(LedgerError):
    def __init__(self, amount: object) -> None:
        self.amount = amount
        super().__init__(f"Amount must be a positive integer, got {amount!r}")


class RewardNotFound(LedgerError):
    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"Reward {ref!r} not found")


class UserNotFound(LedgerError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------
class IntakeError(GeoteraError):
    """A report or collection could not be accepted."""


class VerificationFailed(IntakeError):
    pass


class ReportNotFound(IntakeError):
    def __init__(self, report_id: int) -> None:
        self.report_id = report_id
        super().__init__(f"Report {report_id} not found")


class ReportAlreadyCollected(IntakeError):
    def __init__(self, report_id: int) -> None:
        self.report_id = report_id
        super().__init__(f"Report {report_id} has already been collected")


class VerificationAlreadyUsed(IntakeError):
    def __init__(self, verification_id: str) -> None:
        self.verification_id = verification_id
        super().__init__("This verification has already been used for a report")


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
class PersistenceUnavailable(GeoteraError):
    """The store rejected a read or write.  Nothing was committed."""


class ReconciliationMismatch(GeoteraError):
    """A reward snapshot disagrees with the totals replayed from the ledger."""

    def __init__(self, user_id: int, stored: dict | None, actual: dict) -> None:
        self.user_id = user_id
        self.stored = stored
        self.actual = actual
        super().__init__(
            f"Reward snapshot for user {user_id} drifted: "
            f"stored={stored} actual={actual}"
        )
