"""
routes/transactions.py — Transaction route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return the response body.
  - No business logic. No DB queries.
  - _serialize_* helpers are pure data-shape helpers; amounts are strings.

Endpoints (url_prefix=/api/transactions):
  GET   ""        → 200  {transactions}        list owned + shared, filtered
  POST  /split    → 200  {splits}              even split among friends
                         {message, splitwiseData, splits} when mirroring is on
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from splitease.app.extensions import SPLITWISE_CLIENT_KEY, db
from splitease.app.middleware.auth_middleware import require_auth
from splitease.app.models.split import Split
from splitease.app.models.transaction import Transaction
from splitease.app.schemas.transaction_schema import (
    SplitTransactionSchema,
    TransactionFilterSchema,
)
from splitease.app.services import split_service, transaction_service
from splitease.app.services.user_service import build_user_dict

transactions_bp = Blueprint("transactions", __name__)


# ── Serialization helpers ──────────────────────────────────────────────────

def _serialize_split(split: Split, include_user: bool = True) -> dict:
    data = {
        "id": split.id,
        "transactionId": split.transaction_id,
        "userId": split.user_id,
        "amount": str(split.amount),
    }
    if include_user:
        data["user"] = build_user_dict(split.user)
    return data


def _serialize_transaction(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "amount": str(transaction.amount),
        "description": transaction.description,
        "date": transaction.date.isoformat(),
        "userId": transaction.user_id,
        "issplit": transaction.issplit,
        "user": build_user_dict(transaction.owner),
        "splits": [_serialize_split(s) for s in transaction.splits],
    }


# ── Routes ─────────────────────────────────────────────────────────────────

@transactions_bp.route("", methods=["GET"])
@require_auth
def list_transactions():
    """GET /api/transactions — Transactions the caller owns or shares, newest first."""
    filters = TransactionFilterSchema().load(request.args.to_dict())
    transactions = transaction_service.list_transactions(
        caller_email=g.identity.email,
        filters=filters,
        session=db.session,
    )
    return jsonify({
        "transactions": [_serialize_transaction(t) for t in transactions],
    }), 200


@transactions_bp.route("/split", methods=["POST"])
@require_auth
def split_transaction():
    """
    POST /api/transactions/split — Split a transaction evenly with friends.
    Mirrors to Splitwise when SPLITWISE_MIRROR_ENABLED is set.
    """
    data = SplitTransactionSchema().load(request.get_json(force=True, silent=True) or {})

    splitwise = None
    if current_app.config.get("SPLITWISE_MIRROR_ENABLED"):
        splitwise = current_app.extensions[SPLITWISE_CLIENT_KEY]

    result = split_service.split_transaction(
        caller_email=g.identity.email,
        transaction_id=data["transaction_id"],
        friend_ids=data["friend_ids"],
        session=db.session,
        splitwise=splitwise,
    )
    db.session.commit()

    splits = [_serialize_split(s, include_user=False) for s in result.splits]
    if splitwise is not None:
        return jsonify({
            "message": "Transaction split and recorded in Splitwise.",
            "splitwiseData": result.splitwise_data,
            "splits": splits,
        }), 200
    return jsonify({"splits": splits}), 200
