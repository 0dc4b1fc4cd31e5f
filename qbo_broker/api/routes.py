"""
FastAPI routes for the QuickBooks OAuth broker.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, NoReturn
from urllib.parse import parse_qs, urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from qbo_broker.clients import (
    OAuthTokenExchangeError,
    QuickBooksAPIError,
    UpstreamUnavailableError,
)
from qbo_broker.dependencies import (
    get_app_settings,
    get_bill_batch_service,
    get_current_user,
    get_entity_service,
    get_invitation_service,
    get_token_manager,
)
from qbo_broker.schemas import (
    AuthorizeRequest,
    AuthorizeResponse,
    ConnectionStatus,
    CreateBillsRequest,
    DisconnectResponse,
    EntityRequest,
    InvitationRequest,
    InvitationTokenRequest,
    InvitationView,
    TenantRequest,
)
from qbo_broker.services import (
    AuthorizationCallbackError,
    BatchRequestError,
    InvalidStateError,
    InvitationError,
    InvitationExpiredError,
    InvitationNotFoundError,
    NotConnectedError,
    RefreshFailedError,
    TokenMappingError,
    UnknownEntityError,
    resolve_entity,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_CLOSE_WINDOW_HTML = "<script>window.close();</script>"


def _raise_connection_error(exc: Exception, *, tenant_id: str) -> NoReturn:
    """Translate token and provider failures into HTTP errors."""
    if isinstance(exc, NotConnectedError):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="QuickBooks account not connected.",
        ) from exc
    if isinstance(exc, RefreshFailedError):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="QuickBooks authorization expired; reconnect required.",
        ) from exc
    if isinstance(exc, QuickBooksAPIError):
        logger.error(
            "QuickBooks API error for tenant %s (status=%s): %s",
            tenant_id,
            exc.status_code,
            exc.body,
        )
    else:
        logger.error("QuickBooks request failed for tenant %s: %s", tenant_id, exc)
    raise HTTPException(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        detail="QuickBooks request failed.",
    ) from exc


_CONNECTION_ERRORS = (
    NotConnectedError,
    RefreshFailedError,
    QuickBooksAPIError,
    OAuthTokenExchangeError,
    TokenMappingError,
    UpstreamUnavailableError,
)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


def _authorization_response(
    request: Request, token_manager: Any, *, tenant_id: str, user_id: str, redirect: bool
) -> Any:
    authorization_uri = token_manager.begin_authorization(tenant_id, user_id)
    state = _state_from_uri(authorization_uri)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(
            url=authorization_uri, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    if "text/plain" in accept_header.lower():
        return Response(content=authorization_uri, media_type="text/plain")

    return AuthorizeResponse(authorization_uri=authorization_uri, state=state)


def _state_from_uri(uri: str) -> str:
    return parse_qs(urlparse(uri).query).get("state", [""])[0]


@router.get("/auth/quickbooks/authorize", status_code=HTTPStatus.OK)
async def start_quickbooks_oauth_flow(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
    tenant_id: str = Query(..., description="Workspace requesting the connection."),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Intuit consent screen.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by issuing a state token and authorization URL.
    """
    return _authorization_response(
        request, token_manager, tenant_id=tenant_id, user_id=user_id, redirect=redirect
    )


@router.post("/auth/quickbooks/authorize", status_code=HTTPStatus.OK)
async def start_quickbooks_oauth_flow_post(
    payload: AuthorizeRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> Any:
    return _authorization_response(
        request,
        token_manager,
        tenant_id=payload.tenant_id,
        user_id=user_id,
        redirect=False,
    )


@router.get("/auth/quickbooks/callback", response_class=HTMLResponse)
async def handle_quickbooks_oauth_callback(
    request: Request,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> HTMLResponse:
    """Complete the OAuth exchange and close the consent window."""
    try:
        await token_manager.complete_authorization(str(request.url))
    except (InvalidStateError, AuthorizationCallbackError) as exc:
        logger.warning("Callback rejected: %s", exc)
        return HTMLResponse("Callback error", status_code=HTTPStatus.BAD_REQUEST)
    except (OAuthTokenExchangeError, TokenMappingError, UpstreamUnavailableError) as exc:
        logger.error("Authorization code exchange failed: %s", exc)
        return HTMLResponse("Callback error", status_code=HTTPStatus.BAD_REQUEST)

    return HTMLResponse(_CLOSE_WINDOW_HTML)


@router.post("/quickbooks/check-connection", response_model=ConnectionStatus)
async def check_connection(
    payload: TenantRequest,
    _user_id: Annotated[str, Depends(get_current_user)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> ConnectionStatus:
    """Report the connection state, refreshing an expired token on the way."""
    try:
        connected = await token_manager.check_connection(payload.tenant_id)
    except _CONNECTION_ERRORS as exc:
        _raise_connection_error(exc, tenant_id=payload.tenant_id)
    return ConnectionStatus(connected=connected)


@router.post("/quickbooks/disconnect", response_model=DisconnectResponse)
async def disconnect(
    payload: TenantRequest,
    _user_id: Annotated[str, Depends(get_current_user)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> DisconnectResponse:
    await token_manager.disconnect(payload.tenant_id)
    return DisconnectResponse()


@router.post("/quickbooks/get-entity")
async def get_entity(
    payload: EntityRequest,
    _user_id: Annotated[str, Depends(get_current_user)],
    entity_service: Annotated[Any, Depends(get_entity_service)],
) -> dict:
    """Return the provider's query result for a catalog entity kind."""
    try:
        resolve_entity(payload.entity)
    except UnknownEntityError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Invalid entity"
        ) from exc

    try:
        return await entity_service.fetch_entity(payload.tenant_id, payload.entity)
    except _CONNECTION_ERRORS as exc:
        _raise_connection_error(exc, tenant_id=payload.tenant_id)


@router.post("/quickbooks/create-bills")
async def create_bills(
    payload: CreateBillsRequest,
    _user_id: Annotated[str, Depends(get_current_user)],
    batch_service: Annotated[Any, Depends(get_bill_batch_service)],
) -> dict:
    """Create bills, checks, expenses and card charges in one batch call."""
    try:
        return await batch_service.create_bills(
            payload.tenant_id,
            bills=payload.bills,
            checks=payload.checks,
            expenses=payload.expenses,
            cc_charges=payload.cc_charges,
        )
    except BatchRequestError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)
        ) from exc
    except _CONNECTION_ERRORS as exc:
        _raise_connection_error(exc, tenant_id=payload.tenant_id)


def _invitation_http_error(exc: InvitationError) -> HTTPException:
    if isinstance(exc, InvitationNotFoundError):
        return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvitationExpiredError):
        return HTTPException(status_code=HTTPStatus.GONE, detail=str(exc))
    return HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc))


def _invitation_view(record: Any) -> InvitationView:
    return InvitationView(
        tenant_id=record.tenant_id,
        inviter_id=record.inviter_id,
        invitee_email=record.invitee_email,
        invitee_role=record.invitee_role,
        used=record.used,
        expiration_time=record.expiration_time,
    )


@router.post(
    "/invitations/send",
    response_model=InvitationView,
    status_code=HTTPStatus.CREATED,
)
async def send_invitation(
    payload: InvitationRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[Any, Depends(get_invitation_service)],
) -> InvitationView:
    record = await service.send_invitation(
        tenant_id=payload.tenant_id,
        inviter_id=user_id,
        invitee_email=str(payload.invitee_email),
        invitee_role=payload.invitee_role,
    )
    return _invitation_view(record)


@router.post("/invitations/validate", response_model=InvitationView)
async def validate_invitation(
    payload: InvitationTokenRequest,
    service: Annotated[Any, Depends(get_invitation_service)],
) -> InvitationView:
    try:
        record = service.validate_invitation(payload.token)
    except InvitationError as exc:
        raise _invitation_http_error(exc) from exc
    return _invitation_view(record)


@router.post("/invitations/accept", response_model=InvitationView)
async def accept_invitation(
    payload: InvitationTokenRequest,
    user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[Any, Depends(get_invitation_service)],
) -> InvitationView:
    try:
        record = service.accept_invitation(payload.token, user_id)
    except InvitationError as exc:
        raise _invitation_http_error(exc) from exc
    return _invitation_view(record)


@router.get("/invitations", response_model=list[InvitationView])
async def list_invitations(
    _user_id: Annotated[str, Depends(get_current_user)],
    service: Annotated[Any, Depends(get_invitation_service)],
    tenant_id: str = Query(..., description="Workspace whose invitations to list."),
) -> list[InvitationView]:
    return [_invitation_view(record) for record in service.list_invitations(tenant_id)]


__all__ = ["router"]
