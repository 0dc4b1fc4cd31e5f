"""Service layer exports."""

from .bills import BatchRequestError, BillBatchService, build_batch_request
from .credentials import CredentialStore, is_expired
from .entities import EntityService, UnknownEntityError, resolve_entity
from .invitations import (
    InvitationError,
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationService,
    InvitationUsedError,
)
from .oauth_state import (
    InvalidStateError,
    OAuthStateRegistry,
    StateExpiredError,
    StateNotFoundError,
)
from .token_codec import TokenMappingError, to_credential_record
from .token_manager import (
    AuthorizationCallbackError,
    NotConnectedError,
    QuickBooksTokenManager,
    RefreshFailedError,
)

__all__ = [
    "AuthorizationCallbackError",
    "BatchRequestError",
    "BillBatchService",
    "CredentialStore",
    "EntityService",
    "InvalidStateError",
    "InvitationError",
    "InvitationExpiredError",
    "InvitationNotFoundError",
    "InvitationService",
    "InvitationUsedError",
    "NotConnectedError",
    "OAuthStateRegistry",
    "QuickBooksTokenManager",
    "RefreshFailedError",
    "StateExpiredError",
    "StateNotFoundError",
    "TokenMappingError",
    "UnknownEntityError",
    "build_batch_request",
    "is_expired",
    "resolve_entity",
    "to_credential_record",
]
