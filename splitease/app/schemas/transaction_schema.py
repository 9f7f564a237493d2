"""
schemas/transaction_schema.py — Marshmallow schemas for transaction endpoints.

Validation responsibility:
  - This file:
      - Field types and formats for the listing filters (bool, ISO dates, decimals)
      - Split request shape: transactionId present and integral, friendIds a
        non-empty list of non-blank strings without duplicates
  - services/split_service.py:
      - Transaction existence and ownership (DB lookup)
      - Friend ids resolving to real users, caller not among them (DB lookup)
      - The already-split guard (conditional update)

IMPORTANT: Inherits from marshmallow.Schema directly so schemas can be
           loaded in unit tests without a Flask application context.
"""

from __future__ import annotations

from datetime import datetime, timezone

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    pre_load,
    validate,
    validates_schema,
)

from splitease.app.errors import ErrorCode

# transactions.id is a 32-bit INTEGER column; larger ids cannot exist.
MAX_TRANSACTION_ID = 2**31 - 1


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or contains only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class IsoDateTime(fields.Field):
    """
    Accepts an ISO-8601 date ("2025-03-15") or datetime ("2025-03-15T10:00:00Z").

    A bare date means midnight. Values without an offset are taken as UTC;
    values with one are converted to UTC.
    """

    default_error_messages = {
        "invalid": "Not a valid ISO-8601 date or datetime.",
    }

    def _deserialize(self, value, attr, data, **kwargs) -> datetime:
        if not isinstance(value, str):
            raise self.make_error("invalid")
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise self.make_error("invalid") from e

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


# ── List transactions (query string) ──────────────────────────────────────

class TransactionFilterSchema(Schema):
    """
    GET /api/transactions?issplit=&startDate=&endDate=&minAmount=&maxAmount=

    Every filter is optional; an empty query value counts as absent.
    Unknown query parameters are ignored.
    """

    class Meta:
        unknown = EXCLUDE

    issplit = fields.Bool(load_default=None)

    start_date = IsoDateTime(data_key="startDate", load_default=None)
    end_date = IsoDateTime(data_key="endDate", load_default=None)

    # Decimal keeps comparisons against NUMERIC(12, 2) exact. NaN/Infinity rejected.
    min_amount = fields.Decimal(data_key="minAmount", load_default=None)
    max_amount = fields.Decimal(data_key="maxAmount", load_default=None)

    @pre_load
    def drop_empty_values(self, data, **kwargs):
        return {k: v for k, v in data.items() if v not in ("", None)}


# ── Split a transaction (JSON body) ───────────────────────────────────────

class SplitTransactionSchema(Schema):
    """
    POST /api/transactions/split  body {transactionId, friendIds}

    Checks in this schema:
      - transactionId: required integer in 1..MAX_TRANSACTION_ID (no floats, no strings)
      - friendIds: required list of non-blank strings
      - EMPTY_FRIEND_LIST (400): friendIds is []
      - DUPLICATE_SPLIT_USER (400): the same id appears twice
    """

    transaction_id = fields.Int(
        required=True,
        strict=True,
        data_key="transactionId",
        validate=validate.Range(
            min=1,
            max=MAX_TRANSACTION_ID,
            error="transactionId must be a positive integer no larger than {max}.",
        ),
    )

    friend_ids = fields.List(
        fields.Str(validate=[validate.Length(max=36), _validate_non_empty_after_trim]),
        required=True,
        data_key="friendIds",
    )

    @validates_schema
    def validate_friend_ids(self, data: dict, **kwargs) -> None:
        friend_ids = data.get("friend_ids") or []

        if not friend_ids:
            raise ValidationError({"friendIds": [ErrorCode.EMPTY_FRIEND_LIST]})

        if len(friend_ids) != len(set(friend_ids)):
            raise ValidationError({"friendIds": [ErrorCode.DUPLICATE_SPLIT_USER]})
