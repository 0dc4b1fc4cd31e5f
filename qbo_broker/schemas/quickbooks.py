"""Request and response bodies for the QuickBooks pass-through endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


class TenantRequest(BaseModel):
    tenant_id: str = Field(..., alias="tenantId")

    model_config = ConfigDict(populate_by_name=True)


class ConnectionStatus(BaseModel):
    connected: bool


class DisconnectResponse(BaseModel):
    result: Literal["Disconnected"] = "Disconnected"


class EntityRequest(TenantRequest):
    entity: str = Field(..., description="Entity kind, e.g. 'vendors' or 'bank-accounts'.")


class CreateBillsRequest(TenantRequest):
    """Records are passed through in QuickBooks' own JSON shape."""

    bills: List[Dict[str, Any]] = Field(default_factory=list)
    checks: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    cc_charges: List[Dict[str, Any]] = Field(default_factory=list, alias="ccCharges")


__all__ = [
    "ConnectionStatus",
    "CreateBillsRequest",
    "DisconnectResponse",
    "EntityRequest",
    "TenantRequest",
]
