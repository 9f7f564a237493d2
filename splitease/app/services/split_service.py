"""
services/split_service.py — Splitting a transaction evenly among friends.

Rules enforced here:
  TRANSACTION_NOT_FOUND (404)      : the transaction must exist
  FORBIDDEN (403)                  : only the owner may split it
  SELF_SPLIT (422)                 : the owner is never one of the friend ids
  SPLIT_USER_NOT_FOUND (422)       : every friend id must be a local user
  SPLIT_AMOUNT_TOO_SMALL (422)     : a share must be at least 0.01
  TRANSACTION_ALREADY_SPLIT (409)  : issplit flips false → true exactly once
  UPSTREAM_FAILURE (502)           : mirroring was requested and Splitwise failed

Even split (N friends):
  share = amount / (N + 1), quantised to cents with ROUND_DOWN.
  N Split rows of `share` are stored. The owner's share is implicit: it is
  amount - N * share, never stored, and absorbs the rounding remainder.

Consistency:
  The issplit flip is a conditional UPDATE (WHERE issplit = false) checked by
  rowcount, so two concurrent requests cannot both write splits. The flip,
  the split rows and the optional mirror call all happen before the route
  commits; any failure rolls the whole request back and no partial split
  rows persist.

Layer rules:
  - No Flask imports. Receives plain values, a session and an optional client.
  - Commits are the route's responsibility. Only flush here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from splitease.app.errors import AppError, ErrorCode
from splitease.app.integrations.splitwise import SplitwiseClient, SplitwiseError
from splitease.app.models.split import Split
from splitease.app.models.transaction import Transaction
from splitease.app.models.user import User
from splitease.app.services.user_service import get_user_by_email_or_404

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class SplitResult:
    transaction: Transaction
    splits: list[Split]
    splitwise_data: dict[str, Any] | None = None


# ── Private helpers ────────────────────────────────────────────────────────

def _get_transaction_or_404(transaction_id: int, session: Session) -> Transaction:
    """Returns the Transaction or raises TRANSACTION_NOT_FOUND (404)."""
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        raise AppError(
            ErrorCode.TRANSACTION_NOT_FOUND,
            f"Transaction {transaction_id} does not exist.",
            404,
        )
    return transaction


def _require_owner(transaction: Transaction, caller: User) -> None:
    """Raises FORBIDDEN (403) unless the caller owns the transaction."""
    if transaction.user_id != caller.id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the owner of a transaction may split it.",
            403,
        )


def _validate_friend_ids(
        friend_ids: list[str],
        caller: User,
        session: Session,
) -> None:
    """
    Raises SELF_SPLIT (422) if the caller lists themselves, and
    SPLIT_USER_NOT_FOUND (422) for the first id with no local user.
    """
    if caller.id in friend_ids:
        raise AppError(
            ErrorCode.SELF_SPLIT,
            "The transaction owner's share is implicit; do not include yourself in friendIds.",
            422,
            field="friendIds",
        )

    existing = set(
        session.execute(
            select(User.id).where(User.id.in_(friend_ids))
        ).scalars().all()
    )
    for friend_id in friend_ids:
        if friend_id not in existing:
            raise AppError(
                ErrorCode.SPLIT_USER_NOT_FOUND,
                f"User {friend_id} does not exist.",
                422,
                field="friendIds",
            )


def _compute_share(amount: Decimal, friend_count: int) -> Decimal:
    """
    Per-friend share of an even split between the owner and `friend_count` friends.

    ROUND_DOWN to cents; the remainder stays with the owner's implicit share.
    Raises SPLIT_AMOUNT_TOO_SMALL (422) when the share rounds down to zero.
    """
    share = (Decimal(amount) / Decimal(friend_count + 1)).quantize(CENT, rounding=ROUND_DOWN)
    if share <= Decimal("0"):
        raise AppError(
            ErrorCode.SPLIT_AMOUNT_TOO_SMALL,
            f"Amount {amount} is too small to split between {friend_count + 1} people.",
            422,
            field="friendIds",
        )
    return share


def _mark_split(transaction: Transaction, session: Session) -> None:
    """
    Flips issplit false → true with a conditional UPDATE.
    Raises TRANSACTION_ALREADY_SPLIT (409) if another request got there first.
    """
    result = session.execute(
        update(Transaction)
        .where(
            Transaction.id == transaction.id,
            Transaction.issplit.is_(False),
        )
        .values(issplit=True)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise AppError(
            ErrorCode.TRANSACTION_ALREADY_SPLIT,
            f"Transaction {transaction.id} has already been split.",
            409,
        )


def _create_split_rows(
        transaction: Transaction,
        friend_ids: list[str],
        share: Decimal,
        session: Session,
) -> list[Split]:
    """Creates one Split row per friend id, all for the same share."""
    splits = []
    for friend_id in friend_ids:
        split = Split(
            transaction_id=transaction.id,
            user_id=friend_id,
            amount=share,
        )
        session.add(split)
        splits.append(split)
    session.flush()
    return splits


def _mirror_to_splitwise(
        transaction: Transaction,
        splitwise: SplitwiseClient,
) -> dict:
    """Records the full transaction amount in Splitwise. Failure is fatal (502)."""
    try:
        return splitwise.create_expense(
            cost=transaction.amount,
            description=transaction.description,
            date=transaction.date,
        )
    except SplitwiseError as e:
        logger.error("Splitwise mirror failed for transaction %s: %s", transaction.id, e)
        raise AppError(
            ErrorCode.UPSTREAM_FAILURE,
            "The split could not be recorded in Splitwise. Nothing was saved.",
            502,
        )


# ── Public service functions ───────────────────────────────────────────────

def split_transaction(
        caller_email: str,
        transaction_id: int,
        friend_ids: list[str],
        session: Session,
        splitwise: SplitwiseClient | None = None,
) -> SplitResult:
    """
    Splits a transaction evenly between its owner and `friend_ids`.

    Args:
        caller_email:   Email of the authenticated identity (from flask.g).
        transaction_id: The transaction to split.
        friend_ids:     Validated, non-empty, duplicate-free list of user ids.
        splitwise:      When given, the expense is also mirrored to Splitwise.

    Returns:
        SplitResult with the created Split rows (and Splitwise's response
        when mirrored).
    """
    caller = get_user_by_email_or_404(caller_email, session)
    transaction = _get_transaction_or_404(transaction_id, session)

    _require_owner(transaction, caller)
    _validate_friend_ids(friend_ids, caller, session)

    share = _compute_share(transaction.amount, len(friend_ids))

    _mark_split(transaction, session)
    splits = _create_split_rows(transaction, friend_ids, share, session)

    result = SplitResult(transaction=transaction, splits=splits)
    if splitwise is not None:
        result.splitwise_data = _mirror_to_splitwise(transaction, splitwise)

    logger.info(
        "Split transaction %s between owner %s and %d friend(s) at %s each",
        transaction.id, caller.id, len(friend_ids), share,
    )
    return result
