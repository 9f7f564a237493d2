"""
routes/auth.py — Identity sync.

POST /api/auth/sync-user is not called by end users. The identity provider's
webhook (or a trusted backend) calls it after sign-in with a service token
minted by `flask issue-sync-token`; see middleware/auth_middleware.py.

Endpoints (url_prefix=/api/auth):
  POST  /sync-user  → 200  {success, userId}
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from splitease.app.extensions import db
from splitease.app.middleware.auth_middleware import require_service_token
from splitease.app.schemas.auth_schema import SyncUserSchema
from splitease.app.services import user_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/sync-user", methods=["POST"])
@require_service_token
def sync_user():
    """POST /api/auth/sync-user — Upsert the local user for a provider identity."""
    data = SyncUserSchema().load(request.get_json(force=True, silent=True) or {})
    user = user_service.sync_user(
        user_id=data["id"],
        email=data["email"],
        metadata=data.get("metadata"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "userId": user.id}), 200
