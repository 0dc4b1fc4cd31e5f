"""Persisted workspace invitation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class InvitationRecord(BaseModel):
    token: str
    tenant_id: str
    inviter_id: str
    invitee_email: str
    invitee_role: str
    used: bool = False
    expiration_time: datetime
    created_at: datetime
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None


__all__ = ["InvitationRecord"]
