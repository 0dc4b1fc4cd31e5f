"""Persistence of per-tenant QuickBooks credentials."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from qbo_broker.clients.base import DocumentStore
from qbo_broker.models.oauth import CredentialRecord, utcnow

CREDENTIAL_COLLECTION = "credentials"


def is_expired(
    record: CredentialRecord, now: datetime, *, skew_seconds: int = 0
) -> bool:
    """True once ``now`` (shifted by the skew) reaches the token's expiry instant."""
    return now + timedelta(seconds=skew_seconds) >= record.expires_at


class CredentialStore:
    """Read, upsert and delete the credential document keyed by tenant."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    def save(self, record: CredentialRecord) -> CredentialRecord:
        """Upsert a credential, keeping unrelated fields already on the document."""
        existing = self._store.get_item(CREDENTIAL_COLLECTION, record.tenant_id) or {}
        now = self._clock()

        document = {
            **existing,
            **record.model_dump(mode="json", exclude={"created_at", "updated_at"}),
            "created_at": existing.get("created_at") or now.isoformat(),
            "updated_at": now.isoformat(),
        }
        self._store.put_item(CREDENTIAL_COLLECTION, record.tenant_id, document)
        return CredentialRecord.model_validate(document)

    def load(self, tenant_id: str) -> Optional[CredentialRecord]:
        document = self._store.get_item(CREDENTIAL_COLLECTION, tenant_id)
        if document is None:
            return None
        return CredentialRecord.model_validate(document)

    def delete(self, tenant_id: str) -> bool:
        return self._store.delete_item(CREDENTIAL_COLLECTION, tenant_id)


__all__ = ["CREDENTIAL_COLLECTION", "CredentialStore", "is_expired"]
