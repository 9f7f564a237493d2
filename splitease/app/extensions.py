"""
extensions.py — Flask extension singletons.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever a model or route needs it.

Services never import `db`; routes hand them `db.session` explicitly, so unit
tests can pass a MagicMock session instead.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


# ── Integration registry keys ──────────────────────────────────────────────
# External clients are stored on app.extensions under these keys by the app
# factory. Tests inject fakes by passing them to create_app().
IDENTITY_PROVIDER_KEY = "splitease.identity_provider"
SPLITWISE_CLIENT_KEY  = "splitease.splitwise_client"
