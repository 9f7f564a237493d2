"""
services/transaction_service.py — Transaction listing.

Visibility rule: a transaction is visible to a user who owns it OR who has a
Split on it. Every filter applies to both halves of that OR, which is the
same as applying it once to the combined predicate.

Layer rules:
  - No Flask imports. Receives plain values and a SQLAlchemy session.
  - Read-only; nothing here flushes or commits.
"""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from splitease.app.models.split import Split
from splitease.app.models.transaction import Transaction
from splitease.app.services.user_service import get_user_by_email_or_404


def _filter_clauses(filters: dict) -> list:
    """Builds the conjunctive WHERE clauses for the optional listing filters."""
    clauses = []

    if filters.get("issplit") is not None:
        clauses.append(Transaction.issplit.is_(filters["issplit"]))
    if filters.get("start_date") is not None:
        clauses.append(Transaction.date >= filters["start_date"])
    if filters.get("end_date") is not None:
        clauses.append(Transaction.date <= filters["end_date"])
    if filters.get("min_amount") is not None:
        clauses.append(Transaction.amount >= filters["min_amount"])
    if filters.get("max_amount") is not None:
        clauses.append(Transaction.amount <= filters["max_amount"])

    return clauses


def list_transactions(
        caller_email: str,
        filters: dict,
        session: Session,
) -> list[Transaction]:
    """
    Returns every transaction visible to the caller, newest date first.

    Args:
        caller_email: Email of the authenticated identity (from flask.g).
        filters:      Validated dict from TransactionFilterSchema.

    Each transaction is returned with its owner and its splits (and each
    split's participant) loaded. No pagination.
    """
    caller = get_user_by_email_or_404(caller_email, session)

    participates = select(Split.transaction_id).where(Split.user_id == caller.id)

    stmt = (
        select(Transaction)
        .where(
            or_(
                Transaction.user_id == caller.id,
                Transaction.id.in_(participates),
            ),
            *_filter_clauses(filters),
        )
        .options(
            selectinload(Transaction.owner),
            selectinload(Transaction.splits).selectinload(Split.user),
        )
        .order_by(Transaction.date.desc(), Transaction.id.desc())
    )
    return list(session.execute(stmt).scalars().all())
