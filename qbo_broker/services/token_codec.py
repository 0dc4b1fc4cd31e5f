"""Mapping between Intuit token responses and persisted credential records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from qbo_broker.models.oauth import CredentialRecord, utcnow


class TokenMappingError(ValueError):
    """Raised when a token payload is missing required fields."""


def to_credential_record(
    tenant_id: str,
    token_payload: Mapping[str, Any],
    realm_id: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> CredentialRecord:
    """Build a credential record from the token endpoint JSON, issued at ``now``."""
    access_token = token_payload.get("access_token")
    refresh_token = token_payload.get("refresh_token")
    expires_in = token_payload.get("expires_in")

    if not access_token or not refresh_token or expires_in is None:
        raise TokenMappingError("Incomplete token payload returned from Intuit.")

    try:
        expires_in_seconds = int(expires_in)
        refresh_expires = token_payload.get("x_refresh_token_expires_in")
        refresh_expires_seconds = int(refresh_expires) if refresh_expires is not None else None
    except (TypeError, ValueError) as exc:
        raise TokenMappingError("Token lifetime fields must be integers.") from exc

    return CredentialRecord(
        tenant_id=tenant_id,
        access_token=access_token,
        refresh_token=refresh_token,
        token_type=token_payload.get("token_type") or "bearer",
        expires_in_seconds=expires_in_seconds,
        issued_at=now or utcnow(),
        realm_id=realm_id,
        refresh_token_expires_in_seconds=refresh_expires_seconds,
    )


__all__ = ["TokenMappingError", "to_credential_record"]
