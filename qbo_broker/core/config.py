"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token lifecycle
services and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the process env."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class IntuitSettings(BaseSettings):
    """Configuration required for interacting with the Intuit platform."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., validation_alias="QUICKBOOKS_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="QUICKBOOKS_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="QUICKBOOKS_REDIRECT_URI")
    environment: Literal["sandbox", "production"] = Field(
        "sandbox", validation_alias="QUICKBOOKS_ENVIRONMENT"
    )
    minor_version: Optional[str] = Field(
        "75",
        validation_alias="QUICKBOOKS_MINOR_VERSION",
        description="Accounting API minor version appended to every request.",
    )

    @property
    def api_base_url(self) -> str:
        if self.environment == "production":
            return "https://quickbooks.api.intuit.com"
        return "https://sandbox-quickbooks.api.intuit.com"


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL")
    expiry_skew_seconds: int = Field(
        0,
        validation_alias="OAUTH_EXPIRY_SKEW",
        description="Treat access tokens as expired this many seconds early.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "com.intuit.quickbooks.accounting",
            "openid",
            "profile",
            "email",
        ),
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class StoreSettings(BaseSettings):
    """Document store backend selection."""

    model_config = SettingsConfigDict(populate_by_name=True)

    backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="STORE_BACKEND"
    )
    sqlite_db_path: str = Field(
        "data/qbo_broker.db", validation_alias="SQLITE_DB_PATH"
    )
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")


class IdentitySettings(BaseSettings):
    """Verification parameters for caller identity tokens."""

    model_config = SettingsConfigDict(populate_by_name=True)

    jwt_secret: str = Field(..., validation_alias="IDENTITY_JWT_SECRET")
    jwt_algorithms: Annotated[tuple[str, ...], NoDecode] = Field(
        ("HS256",), validation_alias="IDENTITY_JWT_ALGORITHMS"
    )
    jwt_audience: Optional[str] = Field(None, validation_alias="IDENTITY_JWT_AUDIENCE")
    jwt_issuer: Optional[str] = Field(None, validation_alias="IDENTITY_JWT_ISSUER")

    @field_validator("jwt_algorithms", mode="before")
    @classmethod
    def _split_algorithms(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


class MailSettings(BaseSettings):
    """Outbound email used for workspace invitations."""

    model_config = SettingsConfigDict(populate_by_name=True)

    smtp_host: str = Field("localhost", validation_alias="SMTP_HOST")
    smtp_port: int = Field(25, validation_alias="SMTP_PORT")
    smtp_sender: str = Field(
        "no-reply@example.com", validation_alias="SMTP_SENDER"
    )
    dry_run: bool = Field(
        True,
        validation_alias="MAIL_DRY_RUN",
        description="Log invitation emails instead of handing them to SMTP.",
    )
    invitation_accept_url: HttpUrl = Field(
        "http://localhost:3000/invitations/accept",
        validation_alias="INVITATION_ACCEPT_URL",
    )
    invitation_ttl_days: int = Field(7, validation_alias="INVITATION_TTL_DAYS")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    http_timeout_seconds: float = Field(
        10.0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
        description="Upper bound for every outbound call to Intuit.",
    )
    cors_allow_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("*",), validation_alias="CORS_ALLOW_ORIGINS"
    )
    intuit: IntuitSettings = Field(default_factory=IntuitSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    mail: MailSettings = Field(default_factory=MailSettings)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "IdentitySettings",
    "IntuitSettings",
    "MailSettings",
    "OAuthSettings",
    "StoreSettings",
    "get_settings",
]
