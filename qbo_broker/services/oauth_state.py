"""
Single-use OAuth state tokens.

Each authorize call stores a random token bound to the tenant and user that
started the flow. The callback pops the token from the store; the store's
delete is the point of consumption, so a replayed or concurrent redemption
finds nothing and fails with ``StateNotFoundError``.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Tuple

from qbo_broker.clients.base import DocumentStore
from qbo_broker.models.oauth import OAuthStateRecord, utcnow

logger = logging.getLogger(__name__)

STATE_COLLECTION = "oauth_states"


class InvalidStateError(Exception):
    """Raised when an OAuth state token cannot be redeemed."""


class StateNotFoundError(InvalidStateError):
    """The state token was never issued or has already been redeemed."""


class StateExpiredError(InvalidStateError):
    """The state token outlived its time-to-live."""


class OAuthStateRegistry:
    """Issue and redeem CSRF binding tokens."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        ttl_seconds: int = 600,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def create_state(self, tenant_id: str, user_id: str) -> str:
        now = self._clock()
        record = OAuthStateRecord(
            state_token=secrets.token_urlsafe(32),
            tenant_id=tenant_id,
            user_id=user_id,
            created_at=now,
            expires_at=now + self._ttl,
        )
        self._store.put_item(
            STATE_COLLECTION, record.state_token, record.model_dump(mode="json")
        )
        return record.state_token

    def redeem_state(self, state_token: str) -> Tuple[str, str]:
        """Consume a state token and return ``(tenant_id, user_id)``."""
        document = self._store.pop_item(STATE_COLLECTION, state_token)
        if document is None:
            raise StateNotFoundError("OAuth state token not found.")

        record = OAuthStateRecord.model_validate(document)
        if self._clock() > record.expires_at:
            logger.info("Expired OAuth state presented for tenant %s", record.tenant_id)
            raise StateExpiredError("OAuth state token has expired.")
        return record.tenant_id, record.user_id


__all__ = [
    "InvalidStateError",
    "OAuthStateRegistry",
    "STATE_COLLECTION",
    "StateExpiredError",
    "StateNotFoundError",
]
