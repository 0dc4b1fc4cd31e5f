"""Caller identity dependency shared by every tenant-scoped route."""

from __future__ import annotations

from http import HTTPStatus
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from qbo_broker.clients.identity import UnauthorizedError
from qbo_broker.dependencies.clients import get_identity_verifier


def get_current_user(
    request: Request,
    verifier: Annotated[Any, Depends(get_identity_verifier)],
) -> str:
    """Return the verified subject id from the ``Authorization: Bearer`` header."""
    scheme, _, credential = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return verifier.verify(credential.strip())
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Invalid identity token.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


__all__ = ["get_current_user"]
