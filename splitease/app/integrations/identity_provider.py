"""Supabase auth client: resolves a bearer access token to the identity behind it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import requests

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Base class for identity provider failures."""
    pass


class IdentityRejected(IdentityProviderError):
    """The provider looked at the token and refused it."""
    pass


class IdentityProviderUnavailable(IdentityProviderError):
    """The provider could not be reached or answered with a server error."""
    pass


@dataclass(frozen=True)
class Identity:
    subject: str
    email: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class SupabaseIdentityProvider:
    """
    Thin wrapper around GET {base_url}/auth/v1/user.

    The provider is the only authority on whether a token is valid; nothing
    is decoded or verified locally.
    """

    def __init__(self, base_url: str, anon_key: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout

    def get_user(self, access_token: str) -> Identity:
        """
        Resolve an access token to an Identity.

        Raises:
            IdentityRejected: 401/403 from the provider, or no email on the user.
            IdentityProviderUnavailable: transport error, timeout or other non-2xx.
        """
        url = f"{self.base_url}/auth/v1/user"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "apikey": self.anon_key,
        }

        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Identity provider request failed: %s", e)
            raise IdentityProviderUnavailable(f"Identity provider unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise IdentityRejected("Token rejected by identity provider")

        if not response.ok:
            logger.error("Identity provider returned HTTP %s", response.status_code)
            raise IdentityProviderUnavailable(
                f"Identity provider returned HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityProviderUnavailable("Identity provider returned invalid JSON") from e

        subject = data.get("id")
        email = data.get("email")
        if not subject or not email:
            raise IdentityRejected("Identity provider returned a user without id or email")

        return Identity(
            subject=subject,
            email=email,
            metadata=data.get("user_metadata") or {},
        )
