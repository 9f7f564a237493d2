"""
models/split.py — Split table definition.

Key design points:
  - `amount` uses Numeric(12, 2), never Float.
  - One row per participating friend. The owner's share is implicit
    (transaction.amount minus the stored shares) and is never stored.
  - Rows are immutable: nothing in the API updates or deletes them.
  - UNIQUE(transaction_id, user_id) backs the no-duplicate-split rule at the
    DB level; the service's conditional issplit flip is the primary guard.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitease.app.extensions import db


class Split(db.Model):
    __tablename__ = "splits"

    __table_args__ = (
        UniqueConstraint("transaction_id", "user_id", name="uq_splits_transaction_user"),
        CheckConstraint("amount > 0", name="ck_splits_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE: splits are owned by their transaction.
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ON DELETE RESTRICT: cannot delete a user who participates in splits.
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    transaction: Mapped["Transaction"] = relationship(  # noqa: F821
        "Transaction",
        back_populates="splits",
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="splits",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split id={self.id} "
            f"transaction_id={self.transaction_id} "
            f"user_id={self.user_id!r} "
            f"amount={self.amount}>"
        )
