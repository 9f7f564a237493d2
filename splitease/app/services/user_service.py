"""
services/user_service.py — Local user records behind provider identities.

Responsibilities:
  - Resolving an authenticated identity's email to the local User (every
    read path goes through get_user_by_email_or_404)
  - The sync operation: upsert by email, name taken from provider metadata

Provisioning happens ONLY through sync_user(). Read paths never create users;
an identity with no local record gets USER_NOT_FOUND (404).

Layer rules:
  - No Flask imports. Receives plain values and a SQLAlchemy session.
  - Commits are the route's responsibility. Only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitease.app.errors import AppError, ErrorCode
from splitease.app.models.user import User

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _display_name(email: str, metadata: dict) -> str:
    """full_name, then name, then the email's local part."""
    for key in ("full_name", "name"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return email.split("@")[0]


def _avatar_url(metadata: dict) -> str | None:
    for key in ("avatar_url", "picture"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. No business logic."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "avatar_url": user.avatar_url,
        "google_id": user.google_id,
    }


# ── Public service functions ───────────────────────────────────────────────

def get_user_by_email_or_404(email: str, session: Session) -> User:
    """Returns the User with exactly this email or raises USER_NOT_FOUND (404)."""
    user = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()

    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "No local user exists for this identity. Sign in again to sync your account.",
            404,
        )
    return user


def get_current_user(email: str, session: Session) -> dict:
    """Returns the caller's profile as a dict (GET /api/users/me)."""
    return build_user_dict(get_user_by_email_or_404(email, session))


def sync_user(
        user_id: str,
        email: str,
        metadata: dict | None,
        session: Session,
) -> User:
    """
    Creates or updates the local User for a provider identity, keyed by email.

    On create: id is the provider id; google_id is set when the identity came
    from Google sign-in. On update: only name (and avatar_url, when the
    provider sends one) change; id and google_id are left untouched.
    """
    metadata = metadata or {}
    name = _display_name(email, metadata)
    avatar_url = _avatar_url(metadata)

    user = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()

    if user is None:
        user = User(
            id=user_id,
            email=email,
            name=name,
            avatar_url=avatar_url,
            google_id=user_id if metadata.get("provider") == "google" else None,
        )
        session.add(user)
        logger.info("Created user %s for %s", user_id, email)
    else:
        user.name = name
        if avatar_url is not None:
            user.avatar_url = avatar_url
        logger.info("Updated user %s for %s", user.id, email)

    session.flush()
    return user
