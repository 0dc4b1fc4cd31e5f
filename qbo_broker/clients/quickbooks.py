"""
Thin async wrapper for the QuickBooks Online accounting API.

Every call takes the realm and bearer token explicitly; the client keeps no
per-tenant state and can be shared across requests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from qbo_broker.clients.intuit_auth import UpstreamUnavailableError
from qbo_broker.core.config import IntuitSettings

logger = logging.getLogger(__name__)


class QuickBooksAPIError(Exception):
    """Raised when the accounting API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int, body: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class QuickBooksClient:
    """Issue queries and batch operations against a company realm."""

    def __init__(
        self,
        settings: IntuitSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    async def query(
        self, *, realm_id: str, access_token: str, query: str
    ) -> Dict[str, Any]:
        """Run a QuickBooks query statement and return the raw JSON result."""
        return await self._request(
            "GET",
            realm_id=realm_id,
            access_token=access_token,
            path="query",
            params={"query": query},
        )

    async def batch(
        self, *, realm_id: str, access_token: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Submit a BatchItemRequest and return the provider response verbatim."""
        return await self._request(
            "POST",
            realm_id=realm_id,
            access_token=access_token,
            path="batch",
            json=payload,
        )

    async def _request(
        self,
        method: str,
        *,
        realm_id: str,
        access_token: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._settings.api_base_url}/v3/company/{realm_id}/{path}"
        query_params = dict(params or {})
        if self._settings.minor_version:
            query_params["minorversion"] = self._settings.minor_version

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, url, params=query_params, json=json, headers=headers
                )
        except httpx.TimeoutException as exc:
            logger.warning("QuickBooks %s %s timed out", method, path)
            raise UpstreamUnavailableError(f"Timed out calling QuickBooks {path}") from exc
        except httpx.TransportError as exc:
            logger.warning("QuickBooks %s %s failed: %s", method, path, exc)
            raise UpstreamUnavailableError(f"Could not reach QuickBooks {path}") from exc

        if response.is_error:
            raise QuickBooksAPIError(
                f"QuickBooks {path} request failed with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise QuickBooksAPIError(
                f"QuickBooks {path} returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from exc


__all__ = ["QuickBooksAPIError", "QuickBooksClient"]
