"""
models/friend.py — Friend edge table definition.

A row means user_id considers friend_id a friend. The relation is directed:
no symmetric row is implied or enforced. Edges are created administratively;
the API only reads them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitease.app.extensions import db


class Friend(db.Model):
    __tablename__ = "friends"

    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friends_user_friend"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    friend_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="friend_edges",
        foreign_keys=[user_id],
    )

    friend: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[friend_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Friend user_id={self.user_id!r} friend_id={self.friend_id!r}>"
