"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Clients and stores are process-wide singletons; none of them hold per-tenant
state, which lives in the document store.
"""

from functools import lru_cache

from qbo_broker.clients import (
    DocumentStore,
    DynamoDBStore,
    IdentityVerifier,
    IntuitOAuthClient,
    InvitationMailer,
    QuickBooksClient,
    SQLiteStore,
)
from qbo_broker.core.config import AppSettings, get_settings
from qbo_broker.services import (
    BillBatchService,
    CredentialStore,
    EntityService,
    InvitationService,
    OAuthStateRegistry,
    QuickBooksTokenManager,
)


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_document_store() -> DocumentStore:
    """Provide the configured document store backend."""
    settings = _settings()
    if settings.store.backend == "dynamodb":
        return DynamoDBStore(settings.store)
    return SQLiteStore(settings.store.sqlite_db_path)


@lru_cache()
def get_identity_verifier() -> IdentityVerifier:
    """Provide the bearer token verifier."""
    return IdentityVerifier(_settings().identity)


@lru_cache()
def get_intuit_oauth_client() -> IntuitOAuthClient:
    """Create a singleton Intuit OAuth client."""
    settings = _settings()
    return IntuitOAuthClient(
        settings.intuit,
        settings.oauth,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache()
def get_quickbooks_client() -> QuickBooksClient:
    """Provide the accounting API client."""
    settings = _settings()
    return QuickBooksClient(settings.intuit, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_invitation_mailer() -> InvitationMailer:
    return InvitationMailer(_settings().mail)


def get_token_manager() -> QuickBooksTokenManager:
    """Build a token lifecycle manager over the shared store and OAuth client."""
    settings = _settings()
    store = get_document_store()
    return QuickBooksTokenManager(
        oauth_client=get_intuit_oauth_client(),
        state_registry=OAuthStateRegistry(
            store, ttl_seconds=settings.oauth.state_ttl_seconds
        ),
        credential_store=CredentialStore(store),
        expiry_skew_seconds=settings.oauth.expiry_skew_seconds,
    )


def get_entity_service() -> EntityService:
    return EntityService(
        token_manager=get_token_manager(),
        api_client=get_quickbooks_client(),
    )


def get_bill_batch_service() -> BillBatchService:
    return BillBatchService(
        token_manager=get_token_manager(),
        api_client=get_quickbooks_client(),
    )


def get_invitation_service() -> InvitationService:
    settings = _settings()
    return InvitationService(
        store=get_document_store(),
        mailer=get_invitation_mailer(),
        accept_url=str(settings.mail.invitation_accept_url),
        ttl_days=settings.mail.invitation_ttl_days,
    )


__all__ = [
    "get_app_settings",
    "get_bill_batch_service",
    "get_document_store",
    "get_entity_service",
    "get_identity_verifier",
    "get_intuit_oauth_client",
    "get_invitation_mailer",
    "get_invitation_service",
    "get_quickbooks_client",
    "get_token_manager",
]
