"""Expose dependency helpers for FastAPI routers."""

from .auth import get_current_user
from .clients import (
    get_app_settings,
    get_bill_batch_service,
    get_document_store,
    get_entity_service,
    get_identity_verifier,
    get_intuit_oauth_client,
    get_invitation_mailer,
    get_invitation_service,
    get_quickbooks_client,
    get_token_manager,
)

__all__ = [
    "get_app_settings",
    "get_bill_batch_service",
    "get_current_user",
    "get_document_store",
    "get_entity_service",
    "get_identity_verifier",
    "get_intuit_oauth_client",
    "get_invitation_mailer",
    "get_invitation_service",
    "get_quickbooks_client",
    "get_token_manager",
]
