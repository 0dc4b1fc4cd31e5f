"""Public schema exports."""

from .auth import AuthorizeRequest, AuthorizeResponse
from .invitation import InvitationRequest, InvitationTokenRequest, InvitationView
from .quickbooks import (
    ConnectionStatus,
    CreateBillsRequest,
    DisconnectResponse,
    EntityRequest,
    TenantRequest,
)

__all__ = [
    "AuthorizeRequest",
    "AuthorizeResponse",
    "ConnectionStatus",
    "CreateBillsRequest",
    "DisconnectResponse",
    "EntityRequest",
    "InvitationRequest",
    "InvitationTokenRequest",
    "InvitationView",
    "TenantRequest",
]
