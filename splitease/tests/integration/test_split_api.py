"""
tests/integration/test_split_api.py — POST /api/transactions/split end to end.

Verified:
  - Even split: N rows of amount / (N + 1), ROUND_DOWN to cents
  - issplit flips to true and a second split is refused (409) without new rows
  - Empty / duplicate / malformed friendIds are 400 and write nothing
  - Ownership (403), unknown transaction (404), self split and unknown
    friend (422)
  - Authentication failures (401) and provider outage (502)
  - Splitwise mirroring: success response shape, and a failure that rolls
    the whole split back (502)
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from splitease.app.extensions import db
from splitease.app.models.split import Split
from splitease.app.models.transaction import Transaction

from .conftest import (
    DOWN_TOKEN,
    auth_headers,
    make_transaction,
    make_user,
    split,
)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers specific to this module
# ═══════════════════════════════════════════════════════════════════════════

def _setup_owner_and_friends(app, amount: str = "300.00"):
    """alice owns a transaction; bob and carol are potential participants."""
    make_user(app, "alice")
    make_user(app, "bob")
    make_user(app, "carol")
    txn_id = make_transaction(app, "alice", amount=amount)
    return txn_id


def _split_rows(app, txn_id: int) -> list:
    with app.app_context():
        return db.session.execute(
            select(Split).where(Split.transaction_id == txn_id).order_by(Split.user_id)
        ).scalars().all()


def _issplit(app, txn_id: int) -> bool:
    with app.app_context():
        return db.session.get(Transaction, txn_id).issplit


def _split_count(app) -> int:
    with app.app_context():
        return db.session.execute(select(func.count(Split.id))).scalar_one()


# ═══════════════════════════════════════════════════════════════════════════
# Happy path
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitHappyPath:

    def test_split_between_two_friends_creates_equal_shares(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, ["bob", "carol"])

        assert resp.status_code == 200
        body = resp.get_json()
        assert [s["userId"] for s in body["splits"]] == ["bob", "carol"]
        assert all(s["amount"] == "100.00" for s in body["splits"])
        assert all(s["transactionId"] == txn_id for s in body["splits"])

        rows = _split_rows(app, txn_id)
        assert [r.user_id for r in rows] == ["bob", "carol"]
        assert all(r.amount == Decimal("100.00") for r in rows)
        assert _issplit(app, txn_id) is True

    def test_split_rounds_share_down_and_owner_keeps_remainder(self, app, client):
        txn_id = _setup_owner_and_friends(app, amount="10.00")

        resp = split(client, "alice@test.com", txn_id, ["bob", "carol"])

        assert resp.status_code == 200
        rows = _split_rows(app, txn_id)
        assert [r.amount for r in rows] == [Decimal("3.33"), Decimal("3.33")]
        # 10.00 - 2 * 3.33 = 3.34 stays with alice; no row is stored for her.
        assert "alice" not in [r.user_id for r in rows]

    def test_split_with_one_friend_halves_the_amount(self, app, client):
        txn_id = _setup_owner_and_friends(app, amount="45.50")

        resp = split(client, "alice@test.com", txn_id, ["bob"])

        assert resp.status_code == 200
        assert resp.get_json()["splits"][0]["amount"] == "22.75"

    def test_response_without_mirroring_has_no_splitwise_data(self, app, client, splitwise):
        txn_id = _setup_owner_and_friends(app)

        body = split(client, "alice@test.com", txn_id, ["bob"]).get_json()

        assert "splitwiseData" not in body
        assert splitwise.expenses == []


# ═══════════════════════════════════════════════════════════════════════════
# Already split
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitOnlyOnce:

    def test_second_split_returns_409_and_adds_no_rows(self, app, client):
        txn_id = _setup_owner_and_friends(app)
        assert split(client, "alice@test.com", txn_id, ["bob"]).status_code == 200

        resp = split(client, "alice@test.com", txn_id, ["carol"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "TRANSACTION_ALREADY_SPLIT"
        assert [r.user_id for r in _split_rows(app, txn_id)] == ["bob"]

    def test_transaction_created_as_split_cannot_be_split(self, app, client):
        make_user(app, "alice")
        make_user(app, "bob")
        txn_id = make_transaction(app, "alice", issplit=True)

        resp = split(client, "alice@test.com", txn_id, ["bob"])

        assert resp.status_code == 409
        assert _split_count(app) == 0


# ═══════════════════════════════════════════════════════════════════════════
# Request validation
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitValidation:

    def test_empty_friend_list_returns_400_and_writes_nothing(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, [])

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "EMPTY_FRIEND_LIST"
        assert error["field"] == "friendIds"
        assert _split_count(app) == 0
        assert _issplit(app, txn_id) is False

    def test_duplicate_friend_ids_returns_400(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, ["bob", "bob"])

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "DUPLICATE_SPLIT_USER"
        assert _split_count(app) == 0

    def test_missing_transaction_id_returns_400(self, app, client):
        make_user(app, "alice")

        resp = client.post(
            "/api/transactions/split",
            json={"friendIds": ["bob"]},
            headers=auth_headers("alice@test.com"),
        )

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "MISSING_FIELD"
        assert error["field"] == "transactionId"

    def test_string_transaction_id_returns_400(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", str(txn_id), ["bob"])

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_FIELD"

    def test_transaction_id_beyond_integer_range_returns_400(self, app, client):
        _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", 2**63, ["bob"])

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "transactionId"

    def test_malformed_json_body_returns_400(self, app, client):
        make_user(app, "alice")

        resp = client.post(
            "/api/transactions/split",
            data="{not json",
            content_type="application/json",
            headers=auth_headers("alice@test.com"),
        )

        assert resp.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# Business rules
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitRules:

    def test_unknown_transaction_returns_404(self, app, client):
        make_user(app, "alice")
        make_user(app, "bob")

        resp = split(client, "alice@test.com", 999999, ["bob"])

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "TRANSACTION_NOT_FOUND"

    def test_non_owner_cannot_split(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "bob@test.com", txn_id, ["carol"])

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"
        assert _issplit(app, txn_id) is False

    def test_owner_in_friend_ids_returns_422(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, ["bob", "alice"])

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SELF_SPLIT"
        assert _split_count(app) == 0

    def test_unknown_friend_returns_422_and_writes_nothing(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, ["bob", "nobody"])

        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"] == "SPLIT_USER_NOT_FOUND"
        assert "nobody" in error["message"]
        assert _split_count(app) == 0
        assert _issplit(app, txn_id) is False

    def test_share_below_one_cent_returns_422(self, app, client):
        txn_id = _setup_owner_and_friends(app, amount="0.02")

        resp = split(client, "alice@test.com", txn_id, ["bob", "carol"])

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SPLIT_AMOUNT_TOO_SMALL"
        assert _issplit(app, txn_id) is False

    def test_caller_without_local_user_returns_404(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "stranger@test.com", txn_id, ["bob"])

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitAuthentication:

    def test_missing_authorization_header_returns_401(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = client.post(
            "/api/transactions/split",
            json={"transactionId": txn_id, "friendIds": ["bob"]},
        )

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_MISSING"
        assert _split_count(app) == 0

    def test_rejected_token_returns_401(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = client.post(
            "/api/transactions/split",
            json={"transactionId": txn_id, "friendIds": ["bob"]},
            headers={"Authorization": "Bearer forged"},
        )

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_non_bearer_scheme_returns_401(self, app, client):
        resp = client.post(
            "/api/transactions/split",
            json={"transactionId": 1, "friendIds": ["bob"]},
            headers={"Authorization": "Basic abc"},
        )

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_identity_provider_outage_returns_502(self, app, client):
        txn_id = _setup_owner_and_friends(app)

        resp = client.post(
            "/api/transactions/split",
            json={"transactionId": txn_id, "friendIds": ["bob"]},
            headers={"Authorization": f"Bearer {DOWN_TOKEN}"},
        )

        assert resp.status_code == 502
        assert resp.get_json()["error"]["code"] == "UPSTREAM_FAILURE"
        assert _split_count(app) == 0


# ═══════════════════════════════════════════════════════════════════════════
# Splitwise mirroring
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitMirroring:

    def test_mirrored_split_records_full_amount_in_splitwise(
            self, app, client, splitwise, mirror_enabled,
    ):
        txn_id = _setup_owner_and_friends(app)

        resp = split(client, "alice@test.com", txn_id, ["bob", "carol"])

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Transaction split and recorded in Splitwise."
        assert body["splitwiseData"]["expenses"][0]["cost"] == "300.00"
        assert len(body["splits"]) == 2
        assert splitwise.expenses == [{
            "cost": "300.00",
            "description": "Dinner",
            "date": splitwise.expenses[0]["date"],
        }]

    def test_splitwise_failure_returns_502_and_rolls_back(
            self, app, client, splitwise, mirror_enabled,
    ):
        txn_id = _setup_owner_and_friends(app)
        splitwise.fail = True

        resp = split(client, "alice@test.com", txn_id, ["bob", "carol"])

        assert resp.status_code == 502
        assert resp.get_json()["error"]["code"] == "UPSTREAM_FAILURE"
        assert _split_count(app) == 0
        assert _issplit(app, txn_id) is False

    def test_split_can_be_retried_after_splitwise_recovers(
            self, app, client, splitwise, mirror_enabled,
    ):
        txn_id = _setup_owner_and_friends(app)
        splitwise.fail = True
        assert split(client, "alice@test.com", txn_id, ["bob"]).status_code == 502

        splitwise.fail = False
        resp = split(client, "alice@test.com", txn_id, ["bob"])

        assert resp.status_code == 200
        assert len(_split_rows(app, txn_id)) == 1
