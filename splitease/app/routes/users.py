"""
routes/users.py — The caller's own profile.

Endpoints (url_prefix=/api/users):
  GET  /me  → 200  {user}   local user matched by the verified token's email
                   404 USER_NOT_FOUND when sync-user has not run for them yet
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from splitease.app.extensions import db
from splitease.app.middleware.auth_middleware import require_auth
from splitease.app.services import user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /api/users/me — The caller's local profile."""
    user = user_service.get_current_user(
        email=g.identity.email,
        session=db.session,
    )
    return jsonify({"user": user}), 200
