"""
geotera.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables:
- users              — Community members (unique email identity)
- user_profiles      — Per-user contact details and notification opt-out
- reports            — Verified waste sightings
- collected_wastes   — One row per confirmed pickup of a report
- transactions       — Append-only points ledger (single source of truth)
- rewards            — Per-user leaderboard snapshot (materialised from ledger)
- redeemable_rewards — Static reward catalogue
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from geotera.engine.ledger import TransactionType


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Geotera ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReportStatus(enum.StrEnum):
    """Lifecycle of a waste report."""
    PENDING = "pending"
    COLLECTED = "collected"


# ---------------------------------------------------------------------------
# Users — one row per community member
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Bumped on every ledger append; compare-and-swap token for redemption
    ledger_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    profile: Mapped[UserProfile | None] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    transactions: Mapped[list[Transaction]] = relationship(back_populates="user")
    reward: Mapped[Reward | None] = relationship(back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


# ---------------------------------------------------------------------------
# UserProfile — settings page data
# ---------------------------------------------------------------------------
class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    address: Mapped[str | None] = mapped_column(Text, default=None)
    notifications: Mapped[bool] = mapped_column(Boolean, default=True)
    profile_image: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="profile")

    def __repr__(self) -> str:
        return f"<UserProfile user={self.user_id}>"


# ---------------------------------------------------------------------------
# Reports — verified waste sightings
# ---------------------------------------------------------------------------
class Report(Base):
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    location: Mapped[str] = mapped_column(Text, nullable=False)
    waste_type: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[str] = mapped_column(String(255), nullable=False)  # "2 kg", "500g"
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    verification_result: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # jti of the signed verification this report was submitted with; single use
    verification_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReportStatus.PENDING.value
    )
    collector_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_reports_user", "user_id"),
        Index("ix_reports_status_time", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Report id={self.id} type={self.waste_type!r} status={self.status}>"


# ---------------------------------------------------------------------------
# CollectedWaste — one pickup per report
# ---------------------------------------------------------------------------
class CollectedWaste(Base):
    __tablename__ = "collected_wastes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    collector_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    collected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_collected_wastes_collector", "collector_id"),
    )

    def __repr__(self) -> str:
        return f"<CollectedWaste report={self.report_id} collector={self.collector_id}>"


# ---------------------------------------------------------------------------
# Transactions — append-only points ledger
# ---------------------------------------------------------------------------
class Transaction(Base):
    """One immutable ledger entry.

    Balance is always derived from these rows, never stored.  The service
    layer only ever inserts; there is no update or delete path.
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint(
            "type IN ('{}')".format("', '".join(t.value for t in TransactionType)),
            name="ck_transactions_type",
        ),
        Index("ix_transactions_user_time", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} user={self.user_id} {self.type} {self.amount}>"


# ---------------------------------------------------------------------------
# Rewards — leaderboard snapshot (materialised from transactions)
# ---------------------------------------------------------------------------
class Reward(Base):
    """Denormalised per-user rollup used for fast leaderboard reads.

    Always reconcilable by replaying the user's transactions; see
    :mod:`geotera.services.reconciliation_service`.
    """
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    report_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    collect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="reward")

    __table_args__ = (
        Index("ix_rewards_points_desc", "points"),
    )

    def __repr__(self) -> str:
        return f"<Reward user={self.user_id} points={self.points} lvl={self.level}>"


# ---------------------------------------------------------------------------
# RedeemableReward — static catalogue
# ---------------------------------------------------------------------------
class RedeemableReward(Base):
    __tablename__ = "redeemable_rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    collection_info: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        CheckConstraint("cost > 0", name="ck_redeemable_rewards_cost_positive"),
    )

    def __repr__(self) -> str:
        return f"<RedeemableReward slug={self.slug!r} cost={self.cost}>"
