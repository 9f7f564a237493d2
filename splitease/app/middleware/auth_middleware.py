"""
middleware/auth_middleware.py — Request authentication decorators.

@require_auth (every user-facing endpoint):
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Asks the identity provider who the token belongs to
  3. Attaches the resolved Identity to flask.g.identity
  4. Raises the appropriate 401 (or 502 if the provider is down) otherwise

@require_service_token (POST /api/auth/sync-user only):
  Accepts a short-lived HS256 JWT signed with SYNC_SERVICE_SECRET and scoped
  to the sync-user audience. Callers mint one with create_service_token().

Responsibility boundary:
  - This module authenticates. It never touches the database; mapping the
    identity's email to a local User (and the 404 when there is none) is the
    service layer's job.
  - No data access happens before authentication succeeds.
"""

from __future__ import annotations

import functools
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from flask import current_app, g, request

from splitease.app.errors import AppError, ErrorCode
from splitease.app.extensions import IDENTITY_PROVIDER_KEY
from splitease.app.integrations.identity_provider import (
    IdentityProviderUnavailable,
    IdentityRejected,
)


def _extract_bearer_token() -> str:
    """
    Returns the raw token from "Authorization: Bearer <token>".

    Raises TOKEN_MISSING when the header is absent and TOKEN_INVALID when it
    is not in Bearer form.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    return parts[1]


# ── User authentication ────────────────────────────────────────────────────

def require_auth(f: Callable) -> Callable:
    """
    Route decorator that authenticates the caller with the identity provider.

    Attaches the provider's Identity to flask.g.identity. Raises AppError for
    every failure; the global error handler renders it.

    Usage:
        @transactions_bp.route("", methods=["GET"])
        @require_auth
        def list_transactions():
            email = g.identity.email
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    raw_token = _extract_bearer_token()
    provider = current_app.extensions[IDENTITY_PROVIDER_KEY]

    try:
        identity = provider.get_user(raw_token)
    except IdentityRejected:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has expired.",
            401,
        )
    except IdentityProviderUnavailable:
        raise AppError(
            ErrorCode.UPSTREAM_FAILURE,
            "The identity provider is unavailable. Please try again later.",
            502,
        )

    g.identity = identity


# ── Service-to-service authentication ─────────────────────────────────────

def create_service_token(
        secret: str,
        audience: str,
        ttl_seconds: int,
        algorithm: str = "HS256",
        issuer: str = "splitease",
) -> str:
    """
    Mints a signed service token for the sync-user endpoint.
    Payload: iss, aud, iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
        # Distinct even for tokens minted in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def require_service_token(f: Callable) -> Callable:
    """Route decorator for endpoints called by trusted services, not users."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_service()
        return f(*args, **kwargs)

    return decorated


def _authenticate_service() -> None:
    raw_token = _extract_bearer_token()

    try:
        jwt.decode(
            raw_token,
            current_app.config["SYNC_SERVICE_SECRET"],
            algorithms=[current_app.config.get("SYNC_TOKEN_ALGORITHM", "HS256")],
            audience=current_app.config["SYNC_TOKEN_AUDIENCE"],
            options={"require": ["exp", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The service token has expired. Issue a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, wrong audience, malformed token, missing claims.
        raise AppError(
            ErrorCode.SERVICE_TOKEN_INVALID,
            "The service token is invalid.",
            401,
        )
