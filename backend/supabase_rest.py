"""
supabase_rest.py — HTTP store client for the PostgREST-style /rest/v1 API.
Works against this backend or a hosted Supabase project; both expose the same
URL shape. Uses only httpx.
"""
import logging
from datetime import date, time
from typing import Any

import httpx

from config import HTTP_TIMEOUT_SECONDS, MOMENTUM_API_URL
from sync.errors import (
    PolicyDeniedError,
    RecordNotFoundError,
    StoreError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def filter_params(filters: dict | None) -> list[tuple[str, str]]:
    """Equality filters as PostgREST query params; None means IS NULL."""
    params = []
    for key, value in (filters or {}).items():
        if value is None:
            params.append((key, "is.null"))
        else:
            params.append((key, f"eq.{_literal(value)}"))
    return params


def _raise_for_status(resp: httpx.Response, table: str):
    if resp.status_code < 400:
        return
    if resp.status_code in (401, 403):
        raise PolicyDeniedError()
    if resp.status_code >= 500:
        raise TransientNetworkError(f"{table}: server error {resp.status_code}")
    raise StoreError(f"{table}: request rejected ({resp.status_code})")


class RestStore:
    """Scoped store operations over HTTP, authenticated as one identity."""

    def __init__(
        self,
        access_token: str,
        base_url: str = MOMENTUM_API_URL,
        api_key: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.access_token = access_token
        self.api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    async def _request(self, method: str, table: str, params=None, json=None) -> list:
        try:
            resp = await self._client.request(
                method, f"/rest/v1/{table}", params=params, json=json, headers=self._headers()
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, table, e)
            raise TransientNetworkError(f"{table}: {e.__class__.__name__}") from e
        _raise_for_status(resp, table)
        result = resp.json()
        return result if isinstance(result, list) else [result]

    async def select(self, table: str, filters: dict | None = None, order=None, columns: str = "*") -> list[dict]:
        """Select rows with equality filters and an optional (column, descending) order."""
        params = [("select", columns)] + filter_params(filters)
        if order:
            column, descending = order
            params.append(("order", f"{column}.{'desc' if descending else 'asc'}"))
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: dict) -> dict:
        """Insert a row and return the created record."""
        result = await self._request("POST", table, json=row)
        return result[0] if result else {}

    async def update(self, table: str, filters: dict, delta: dict) -> list[dict]:
        """Update matching rows. Matching nothing is a failure."""
        result = await self._request("PATCH", table, params=filter_params(filters), json=delta)
        if not result:
            raise RecordNotFoundError(f"{table}: no matching row")
        return result

    async def delete(self, table: str, filters: dict) -> list[dict]:
        """Delete matching rows. Matching nothing is a failure."""
        result = await self._request("DELETE", table, params=filter_params(filters))
        if not result:
            raise RecordNotFoundError(f"{table}: no matching row")
        return result

    async def sign_out(self):
        """Revoke this store's access token on the server."""
        try:
            resp = await self._client.post("/auth/v1/logout", headers=self._headers())
        except httpx.TransportError as e:
            logger.warning("sign-out failed: %s", e)
            raise TransientNetworkError(f"logout: {e.__class__.__name__}") from e
        _raise_for_status(resp, "logout")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()


# Authentication helpers
async def sign_up(client: httpx.AsyncClient, email: str, password: str, full_name: str | None = None) -> dict:
    """Register a new identity. Returns {access_token, token_type, user}."""
    resp = await client.post(
        "/auth/v1/signup",
        json={"email": email, "password": password, "data": {"full_name": full_name or ""}},
    )
    resp.raise_for_status()
    return resp.json()


async def sign_in(client: httpx.AsyncClient, email: str, password: str) -> dict:
    """Password sign-in. Returns {access_token, token_type, user}."""
    resp = await client.post(
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": email, "password": password},
    )
    resp.raise_for_status()
    return resp.json()
