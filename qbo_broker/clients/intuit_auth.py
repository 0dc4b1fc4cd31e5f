"""
Intuit OAuth 2.0 utilities.

These helpers build the consent URL and talk to the Intuit token endpoints
for code exchange, refresh and revocation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from fastapi import status

from qbo_broker.core.config import IntuitSettings, OAuthSettings

logger = logging.getLogger(__name__)


class UpstreamUnavailableError(Exception):
    """Raised when Intuit cannot be reached or does not answer in time."""


class OAuthTokenExchangeError(Exception):
    """Raised when a token endpoint rejects the request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IntuitOAuthClient:
    """Build Intuit authorization URLs and call the OAuth token endpoints."""

    AUTH_BASE_URL = "https://appcenter.intuit.com/connect/oauth2"
    TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
    REVOKE_URL = "https://developer.api.intuit.com/v2/oauth2/tokens/revoke"

    def __init__(
        self,
        intuit_settings: IntuitSettings,
        oauth_settings: OAuthSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._intuit = intuit_settings
        self._oauth = oauth_settings
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, state: str) -> str:
        """Construct the Intuit consent URL."""
        params = {
            "client_id": self._intuit.client_id,
            "redirect_uri": str(self._intuit.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "state": state,
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for the raw token payload."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": str(self._intuit.redirect_uri),
        }
        return await self._token_request(payload)

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return await self._token_request(payload)

    async def revoke_token(self, token: str) -> None:
        """Revoke an access or refresh token (refresh revokes the whole grant)."""
        response = await self._send(
            "POST",
            self.REVOKE_URL,
            json={"token": token},
        )
        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                response.text, status_code=response.status_code
            )

    async def _token_request(self, payload: Dict[str, str]) -> Dict[str, Any]:
        response = await self._send("POST", self.TOKEN_URL, data=payload)

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                response.text, status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError(
                "Token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            ) from exc

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        auth = httpx.BasicAuth(self._intuit.client_id, self._intuit.client_secret)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.request(
                    method,
                    url,
                    auth=auth,
                    headers={"Accept": "application/json"},
                    **kwargs,
                )
        except httpx.TimeoutException as exc:
            logger.warning("Intuit OAuth request to %s timed out", url)
            raise UpstreamUnavailableError(f"Timed out calling {url}") from exc
        except httpx.TransportError as exc:
            logger.warning("Intuit OAuth request to %s failed: %s", url, exc)
            raise UpstreamUnavailableError(f"Could not reach {url}") from exc


__all__ = [
    "IntuitOAuthClient",
    "OAuthTokenExchangeError",
    "UpstreamUnavailableError",
]
