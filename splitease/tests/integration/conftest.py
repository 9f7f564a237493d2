"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the TestingConfig database (in-memory SQLite unless
    TEST_DATABASE_URL points at a PostgreSQL test database).
  - The app is created once per session with create_app("testing") and two
    in-process fakes injected in place of the network clients:
      FakeIdentityProvider  : "token:<email>" resolves to that email,
                              "token:down" simulates an outage,
                              anything else is rejected
      FakeSplitwise         : records create_expense calls, can be told to fail
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - auth_headers(email)           → {"Authorization": "Bearer token:<email>"}
  - make_user(app, ...)           → user id
  - make_friend(app, ...)         → creates a directed friend edge
  - make_transaction(app, ...)    → transaction id
  - split(client, ...)            → HTTP response of POST /api/transactions/split
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text

from splitease.app import create_app
from splitease.app.extensions import db as _db
from splitease.app.integrations.identity_provider import (
    Identity,
    IdentityProviderUnavailable,
    IdentityRejected,
)
from splitease.app.integrations.splitwise import FRIEND_ID_PREFIX, SplitwiseError

TOKEN_PREFIX = "token:"
DOWN_TOKEN = "token:down"


# ═══════════════════════════════════════════════════════════════════════════
# Fakes for the external services
# ═══════════════════════════════════════════════════════════════════════════

class FakeIdentityProvider:

    def get_user(self, access_token: str) -> Identity:
        if access_token == DOWN_TOKEN:
            raise IdentityProviderUnavailable("identity provider is down")
        if not access_token.startswith(TOKEN_PREFIX):
            raise IdentityRejected("unknown token")
        email = access_token[len(TOKEN_PREFIX):]
        return Identity(subject=f"sub-{email}", email=email)


class FakeSplitwise:

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.expenses: list[dict] = []
        self.friends: list[dict] = []
        self.fail = False

    def create_expense(self, cost, description, date) -> dict:
        if self.fail:
            raise SplitwiseError("Splitwise is down")
        expense = {
            "cost": str(Decimal(cost).quantize(Decimal("0.01"))),
            "description": description,
            "date": date.isoformat(),
        }
        self.expenses.append(expense)
        return {"expenses": [{"id": len(self.expenses), **expense}], "errors": {}}

    def get_friends(self) -> list[dict]:
        if self.fail:
            raise SplitwiseError("Splitwise is down")
        return list(self.friends)


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

_fake_splitwise = FakeSplitwise()


@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig and the fake integrations.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app(
        "testing",
        identity_provider=FakeIdentityProvider(),
        splitwise_client=_fake_splitwise,
    )

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order and resets the fakes.

    splits before transactions (CASCADE would cover it, but be explicit),
    transactions and friends before users (RESTRICT / CASCADE).
    """
    _fake_splitwise.reset()

    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM splits"))
            conn.execute(text("DELETE FROM transactions"))
            conn.execute(text("DELETE FROM friends"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def splitwise():
    """The FakeSplitwise instance wired into the app."""
    return _fake_splitwise


@pytest.fixture
def mirror_enabled(app, monkeypatch):
    monkeypatch.setitem(app.config, "SPLITWISE_MIRROR_ENABLED", True)


@pytest.fixture
def splitwise_friends_enabled(app, monkeypatch):
    monkeypatch.setitem(app.config, "SPLITWISE_FRIENDS_ENABLED", True)


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def auth_headers(email: str) -> dict:
    """Authorization header the FakeIdentityProvider resolves to `email`."""
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{email}"}


def make_user(
    app,
    user_id: str,
    name: str | None = None,
    email: str | None = None,
    avatar_url: str | None = None,
) -> str:
    """Inserts a user directly and returns its id."""
    from splitease.app.models.user import User

    with app.app_context():
        _db.session.add(User(
            id=user_id,
            email=email or f"{user_id}@test.com",
            name=name or user_id.capitalize(),
            avatar_url=avatar_url,
        ))
        _db.session.commit()
    return user_id


def make_friend(app, user_id: str, friend_id: str) -> None:
    """Creates the directed edge user_id → friend_id."""
    from splitease.app.models.friend import Friend

    with app.app_context():
        _db.session.add(Friend(user_id=user_id, friend_id=friend_id))
        _db.session.commit()


def make_transaction(
    app,
    owner_id: str,
    amount: str = "300.00",
    description: str = "Dinner",
    date: datetime | None = None,
    issplit: bool = False,
) -> int:
    """Inserts a transaction directly and returns its id."""
    from splitease.app.models.transaction import Transaction

    with app.app_context():
        transaction = Transaction(
            user_id=owner_id,
            amount=Decimal(amount),
            description=description,
            date=date or datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc),
            issplit=issplit,
        )
        _db.session.add(transaction)
        _db.session.commit()
        return transaction.id


def split(client, email: str, transaction_id, friend_ids):
    """POSTs a split request as `email` and returns the HTTP response."""
    return client.post(
        "/api/transactions/split",
        json={"transactionId": transaction_id, "friendIds": friend_ids},
        headers=auth_headers(email),
    )


def splitwise_friend(splitwise_id: int, name: str, email: str) -> dict:
    """A friend in the shape SplitwiseClient.get_friends() returns."""
    return {
        "id": f"{FRIEND_ID_PREFIX}{splitwise_id}",
        "name": name,
        "email": email,
        "avatar_url": None,
    }
