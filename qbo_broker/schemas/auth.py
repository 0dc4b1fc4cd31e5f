"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AuthorizeRequest(BaseModel):
    """Body accepted by the POST form of the authorize endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(
        ..., alias="tenantId", description="Workspace requesting a QuickBooks connection."
    )


class AuthorizeResponse(BaseModel):
    authorization_uri: str
    state: str


__all__ = ["AuthorizeRequest", "AuthorizeResponse"]
