"""
Domain models for OAuth state and credential persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAuthStateRecord(BaseModel):
    """A single-use CSRF binding between an authorization request and a tenant."""

    state_token: str
    tenant_id: str
    user_id: str
    created_at: datetime
    expires_at: datetime


class CredentialRecord(BaseModel):
    """Represents the stored QuickBooks connection for one tenant."""

    model_config = ConfigDict(extra="allow")

    tenant_id: str = Field(..., description="Workspace that owns the connection.")
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in_seconds: int
    issued_at: datetime
    realm_id: Optional[str] = Field(
        None, description="QuickBooks company (realm) identifier."
    )
    refresh_token_expires_in_seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in_seconds)


__all__ = ["CredentialRecord", "OAuthStateRecord", "utcnow"]
