"""Splitwise API client used to mirror split transactions and read friends."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

import requests

logger = logging.getLogger(__name__)

FRIEND_ID_PREFIX = "splitwise:"


class SplitwiseError(Exception):
    """Splitwise was unreachable, answered non-2xx, or reported errors."""
    pass


def _map_friend(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map a Splitwise friend object onto the local friend shape."""
    first = raw.get("first_name") or ""
    last = raw.get("last_name") or ""
    picture = raw.get("picture") or {}
    return {
        "id": f"{FRIEND_ID_PREFIX}{raw.get('id')}",
        "name": f"{first} {last}".strip() or raw.get("email") or "",
        "email": raw.get("email"),
        "avatar_url": picture.get("medium"),
    }


class SplitwiseClient:

    def __init__(
        self,
        base_url: str,
        api_key: str,
        group_id: int = 0,
        currency_code: str = "INR",
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.group_id = group_id
        self.currency_code = currency_code
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = requests.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise SplitwiseError(f"Splitwise {method} {path} failed: {e}") from e
        except ValueError as e:
            raise SplitwiseError(f"Splitwise {method} {path} returned invalid JSON") from e

    def create_expense(
        self,
        cost: Decimal,
        description: str,
        date: datetime,
    ) -> Dict[str, Any]:
        """
        Record an equally split expense carrying the full transaction amount.

        Returns:
            The decoded Splitwise response body.

        Raises:
            SplitwiseError: on transport failure, non-2xx, or a non-empty `errors` object.
        """
        payload = {
            "cost": str(Decimal(cost).quantize(Decimal("0.01"))),
            "description": description,
            "date": date.isoformat(),
            "currency_code": self.currency_code,
            "group_id": self.group_id,
            "split_equally": True,
        }
        data = self._request("POST", "/create_expense", json=payload)

        # Splitwise answers 200 with an errors object on validation failures.
        errors = data.get("errors")
        if errors:
            raise SplitwiseError(f"Splitwise rejected expense: {errors}")

        return data

    def get_friends(self) -> List[Dict[str, Any]]:
        """Fetch the API key owner's Splitwise friends in the local friend shape."""
        data = self._request("GET", "/get_friends")
        return [_map_friend(f) for f in data.get("friends", [])]
