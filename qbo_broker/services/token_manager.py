"""
QuickBooks token lifecycle for a tenant.

A tenant moves Disconnected -> Authorizing (state issued) -> Connected
(credential stored) and back to Disconnected on revoke. Access tokens are
refreshed lazily, on the request that finds them expired.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from urllib.parse import parse_qs, urlparse

from qbo_broker.clients.intuit_auth import (
    IntuitOAuthClient,
    OAuthTokenExchangeError,
    UpstreamUnavailableError,
)
from qbo_broker.models.oauth import CredentialRecord, utcnow
from qbo_broker.services.credentials import CredentialStore, is_expired
from qbo_broker.services.oauth_state import OAuthStateRegistry, StateNotFoundError
from qbo_broker.services.token_codec import to_credential_record

logger = logging.getLogger(__name__)


class NotConnectedError(Exception):
    """Raised when a tenant has no stored QuickBooks credential."""


class RefreshFailedError(Exception):
    """Raised when Intuit rejects the stored refresh token."""


class AuthorizationCallbackError(Exception):
    """Raised when the provider redirect carries an error or no code."""


class QuickBooksTokenManager:
    """Orchestrates authorize, exchange, persist, refresh and revoke."""

    def __init__(
        self,
        *,
        oauth_client: IntuitOAuthClient,
        state_registry: OAuthStateRegistry,
        credential_store: CredentialStore,
        expiry_skew_seconds: int = 0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._oauth = oauth_client
        self._states = state_registry
        self._credentials = credential_store
        self._skew = expiry_skew_seconds
        self._clock = clock

    def begin_authorization(self, tenant_id: str, user_id: str) -> str:
        """Issue a state token and return the Intuit consent URL embedding it."""
        state = self._states.create_state(tenant_id, user_id)
        return self._oauth.build_authorization_url(state=state)

    async def complete_authorization(self, callback_url: str) -> CredentialRecord:
        """Redeem the callback's state, exchange its code and store the credential."""
        params = parse_qs(urlparse(callback_url).query)
        state = _first(params, "state")
        code = _first(params, "code")
        realm_id = _first(params, "realmId")

        if not state:
            raise StateNotFoundError("Callback is missing the state parameter.")
        tenant_id, user_id = self._states.redeem_state(state)

        error = _first(params, "error")
        if error or not code:
            logger.info(
                "Authorization for tenant %s returned without a code (error=%s)",
                tenant_id,
                error,
            )
            raise AuthorizationCallbackError(error or "Callback is missing the code parameter.")
        if not realm_id:
            logger.info(
                "Authorization for tenant %s returned without a realm id", tenant_id
            )
            raise AuthorizationCallbackError("Callback is missing the realmId parameter.")

        token_payload = await self._oauth.exchange_authorization_code(code)
        record = to_credential_record(
            tenant_id, token_payload, realm_id, now=self._clock()
        )

        try:
            saved = self._credentials.save(record)
        except Exception:
            # The exchanged grant is live at Intuit but unknown locally.
            logger.error(
                "Failed to persist QuickBooks credential for tenant %s; "
                "the newly issued token is orphaned until it expires",
                tenant_id,
            )
            raise

        logger.info(
            "Tenant %s connected to realm %s by user %s", tenant_id, realm_id, user_id
        )
        return saved

    async def get_connection(self, tenant_id: str) -> CredentialRecord:
        """Return a credential whose access token is valid, refreshing if needed."""
        record = self._credentials.load(tenant_id)
        if record is None:
            raise NotConnectedError(f"No QuickBooks connection for tenant {tenant_id}.")

        if not is_expired(record, self._clock(), skew_seconds=self._skew):
            return record
        return await self._refresh(record)

    async def get_valid_access_token(self, tenant_id: str) -> str:
        record = await self.get_connection(tenant_id)
        return record.access_token

    async def check_connection(self, tenant_id: str) -> bool:
        """Report whether the tenant holds a usable connection."""
        try:
            await self.get_connection(tenant_id)
        except NotConnectedError:
            return False
        except RefreshFailedError:
            logger.info("Tenant %s has a stale QuickBooks credential", tenant_id)
            return False
        return True

    async def disconnect(self, tenant_id: str) -> bool:
        """
        Revoke the tenant's token at Intuit and delete the local credential.

        The local record is removed even when revocation fails. Returns whether
        a credential existed.
        """
        record = self._credentials.load(tenant_id)
        if record is None:
            return False

        try:
            await self._oauth.revoke_token(record.access_token)
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Revoke rejected for tenant %s (status=%s): %s",
                tenant_id,
                exc.status_code,
                exc,
            )
        except UpstreamUnavailableError as exc:
            logger.warning("Revoke unavailable for tenant %s: %s", tenant_id, exc)
        finally:
            self._credentials.delete(tenant_id)

        logger.info("Tenant %s disconnected from QuickBooks", tenant_id)
        return True

    async def _refresh(self, record: CredentialRecord) -> CredentialRecord:
        try:
            token_payload = await self._oauth.refresh_token(record.refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Refresh rejected for tenant %s (status=%s): %s",
                record.tenant_id,
                exc.status_code,
                exc,
            )
            raise RefreshFailedError(
                f"Unable to refresh QuickBooks token for tenant {record.tenant_id}."
            ) from exc

        token_payload = dict(token_payload)
        if not token_payload.get("refresh_token"):
            token_payload["refresh_token"] = record.refresh_token

        refreshed = to_credential_record(
            record.tenant_id, token_payload, record.realm_id, now=self._clock()
        )
        logger.info("Refreshed QuickBooks token for tenant %s", record.tenant_id)
        return self._credentials.save(refreshed)


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None


__all__ = [
    "AuthorizationCallbackError",
    "NotConnectedError",
    "QuickBooksTokenManager",
    "RefreshFailedError",
]
