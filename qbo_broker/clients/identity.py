"""Verification of caller identity tokens issued by the workspace application."""

from __future__ import annotations

import logging
from typing import Any, Dict

from jose import JWTError, jwt

from qbo_broker.core.config import IdentitySettings

logger = logging.getLogger(__name__)


class UnauthorizedError(Exception):
    """Raised when a bearer credential cannot be verified."""


class IdentityVerifier:
    """Decode bearer JWTs and return the verified subject id."""

    def __init__(self, settings: IdentitySettings) -> None:
        self._settings = settings

    def verify(self, token: str) -> str:
        if not token:
            raise UnauthorizedError("Missing bearer token.")

        options: Dict[str, Any] = {"verify_aud": self._settings.jwt_audience is not None}
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=list(self._settings.jwt_algorithms),
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options=options,
            )
        except JWTError as exc:
            logger.info("Rejected identity token: %s", exc)
            raise UnauthorizedError("Invalid identity token.") from exc

        subject = claims.get("sub")
        if not subject:
            raise UnauthorizedError("Identity token has no subject.")
        return str(subject)


__all__ = ["IdentityVerifier", "UnauthorizedError"]
