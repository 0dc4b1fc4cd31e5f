"""Schemas for workspace invitations."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class InvitationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(..., alias="tenantId")
    invitee_email: EmailStr = Field(..., alias="inviteeEmail")
    invitee_role: str = Field("member", alias="inviteeRole")


class InvitationTokenRequest(BaseModel):
    token: str


class InvitationView(BaseModel):
    """Invitation details safe to return to callers (no token)."""

    tenant_id: str
    inviter_id: str
    invitee_email: str
    invitee_role: str
    used: bool
    expiration_time: datetime


__all__ = ["InvitationRequest", "InvitationTokenRequest", "InvitationView"]
