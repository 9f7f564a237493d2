"""
services/friend_service.py — Friend listing.

Local friends come from the caller's outgoing Friend edges. When a Splitwise
client is supplied, the caller's Splitwise friends are appended in the same
shape; a Splitwise failure is logged and contributes nothing rather than
failing the request.

Layer rules:
  - No Flask imports. Receives plain values, a session and an optional client.
  - Read-only; nothing here flushes or commits.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitease.app.integrations.splitwise import SplitwiseClient, SplitwiseError
from splitease.app.models.friend import Friend
from splitease.app.models.user import User
from splitease.app.services.user_service import get_user_by_email_or_404

logger = logging.getLogger(__name__)


def _build_friend_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar_url": user.avatar_url,
    }


def _fetch_splitwise_friends(splitwise: SplitwiseClient) -> list[dict]:
    try:
        return splitwise.get_friends()
    except SplitwiseError as e:
        logger.warning("Splitwise friends unavailable, returning local friends only: %s", e)
        return []


def list_friends(
        caller_email: str,
        session: Session,
        splitwise: SplitwiseClient | None = None,
) -> list[dict]:
    """Returns the caller's friends as dicts: {id, name, email, avatar_url}."""
    caller = get_user_by_email_or_404(caller_email, session)

    stmt = (
        select(User)
        .join(Friend, Friend.friend_id == User.id)
        .where(Friend.user_id == caller.id)
        .order_by(User.name)
    )
    friends = [_build_friend_dict(u) for u in session.execute(stmt).scalars().all()]

    if splitwise is not None:
        friends.extend(_fetch_splitwise_friends(splitwise))

    return friends
