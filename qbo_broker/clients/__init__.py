"""Expose constructed client wrappers."""

from .base import DocumentStore
from .dynamodb import DynamoDBStore
from .identity import IdentityVerifier, UnauthorizedError
from .intuit_auth import (
    IntuitOAuthClient,
    OAuthTokenExchangeError,
    UpstreamUnavailableError,
)
from .mailer import InvitationMailer
from .quickbooks import QuickBooksAPIError, QuickBooksClient
from .sqlite_store import SQLiteStore

__all__ = [
    "DocumentStore",
    "DynamoDBStore",
    "IdentityVerifier",
    "IntuitOAuthClient",
    "InvitationMailer",
    "OAuthTokenExchangeError",
    "QuickBooksAPIError",
    "QuickBooksClient",
    "SQLiteStore",
    "UnauthorizedError",
    "UpstreamUnavailableError",
]
