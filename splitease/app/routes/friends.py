"""
routes/friends.py — Friend listing.

Endpoints (url_prefix=/api/friends):
  GET  ""  → 200  {friends}   local friend edges, plus Splitwise friends when
                             SPLITWISE_FRIENDS_ENABLED is set
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from splitease.app.extensions import SPLITWISE_CLIENT_KEY, db
from splitease.app.middleware.auth_middleware import require_auth
from splitease.app.services import friend_service

friends_bp = Blueprint("friends", __name__)


@friends_bp.route("", methods=["GET"])
@require_auth
def list_friends():
    """GET /api/friends — The caller's friends."""
    splitwise = None
    if current_app.config.get("SPLITWISE_FRIENDS_ENABLED"):
        splitwise = current_app.extensions[SPLITWISE_CLIENT_KEY]

    friends = friend_service.list_friends(
        caller_email=g.identity.email,
        session=db.session,
        splitwise=splitwise,
    )
    return jsonify({"friends": friends}), 200
