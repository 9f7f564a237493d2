"""Initial schema: users, friends, transactions, splits.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only: never edit this file after it has been applied to a database.
Schema changes go in a new migration.

Creation order (FK dependencies):
  users → friends → transactions → splits

ON DELETE policies:
  friends.*                 → CASCADE   (edges go with either user)
  transactions.user_id      → RESTRICT  (cannot delete a user who owns transactions)
  splits.transaction_id     → CASCADE   (splits owned by their transaction)
  splits.user_id            → RESTRICT  (cannot delete a user with splits)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    # id is the identity provider's subject id (UUID string), not a serial.

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("google_id", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_users_name_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── friends ────────────────────────────────────────────────────────────
    # Directed edge; no symmetry constraint.

    op.create_table(
        "friends",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friends_user"),
            nullable=False,
        ),
        sa.Column(
            "friend_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friends_friend"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_friends"),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friends_user_friend"),
    )

    # ── transactions ───────────────────────────────────────────────────────

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_transactions_user"),
            nullable=False,
        ),
        sa.Column(
            "issplit",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_transactions_description_nonempty",
        ),
    )

    # ── splits ─────────────────────────────────────────────────────────────
    # UNIQUE(transaction_id, user_id): a friend appears at most once per transaction.

    op.create_table(
        "splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "transaction_id",
            sa.Integer(),
            sa.ForeignKey("transactions.id", ondelete="CASCADE", name="fk_splits_transaction"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_splits_user"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_splits"),
        sa.UniqueConstraint("transaction_id", "user_id", name="uq_splits_transaction_user"),
        sa.CheckConstraint("amount > 0", name="ck_splits_amount_positive"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────
    # Names match the ix_<table>_<column> names SQLAlchemy derives from index=True.

    op.create_index("ix_friends_user_id", "friends", ["user_id"])
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    # Listing orders by date DESC and filters on date ranges.
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_splits_transaction_id", "splits", ["transaction_id"])
    # "Shared with me" half of the listing query.
    op.create_index("ix_splits_user_id", "splits", ["user_id"])


def downgrade() -> None:
    """Drop everything created in upgrade(), in reverse dependency order."""

    op.drop_index("ix_splits_user_id",        table_name="splits")
    op.drop_index("ix_splits_transaction_id", table_name="splits")
    op.drop_index("ix_transactions_date",     table_name="transactions")
    op.drop_index("ix_transactions_user_id",  table_name="transactions")
    op.drop_index("ix_friends_user_id",       table_name="friends")

    op.drop_table("splits")
    op.drop_table("transactions")
    op.drop_table("friends")
    op.drop_table("users")
