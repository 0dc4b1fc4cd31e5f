from __future__ import annotations

import base64
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from qbo_broker.clients.intuit_auth import (
    IntuitOAuthClient,
    OAuthTokenExchangeError,
    UpstreamUnavailableError,
)
from qbo_broker.clients.quickbooks import QuickBooksAPIError, QuickBooksClient
from qbo_broker.core.config import IntuitSettings, OAuthSettings

pytestmark = pytest.mark.anyio


@pytest.fixture
def intuit_settings() -> IntuitSettings:
    return IntuitSettings(
        client_id="client",
        client_secret="secret",
        redirect_uri="https://example.com/api/auth/quickbooks/callback",
    )


def _oauth_client(intuit_settings, handler) -> IntuitOAuthClient:
    return IntuitOAuthClient(
        intuit_settings, OAuthSettings(), transport=httpx.MockTransport(handler)
    )


async def test_authorization_url_embeds_state_and_scopes(intuit_settings):
    client = IntuitOAuthClient(intuit_settings, OAuthSettings())

    url = client.build_authorization_url(state="state-123")

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    assert url.startswith(IntuitOAuthClient.AUTH_BASE_URL)
    assert params["state"] == ["state-123"]
    assert params["response_type"] == ["code"]
    assert params["scope"] == ["com.intuit.quickbooks.accounting openid profile email"]
    assert params["redirect_uri"] == ["https://example.com/api/auth/quickbooks/callback"]


async def test_exchange_uses_basic_auth_and_returns_payload(intuit_settings):
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"access_token": "at", "expires_in": 3600})

    payload = await _oauth_client(intuit_settings, handler).exchange_authorization_code("abc")

    assert payload["access_token"] == "at"
    assert seen["url"] == IntuitOAuthClient.TOKEN_URL
    assert seen["auth"] == "Basic " + base64.b64encode(b"client:secret").decode()
    assert seen["form"]["grant_type"] == ["authorization_code"]
    assert seen["form"]["code"] == ["abc"]


async def test_refresh_rejection_raises_exchange_error(intuit_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant"})

    with pytest.raises(OAuthTokenExchangeError) as exc_info:
        await _oauth_client(intuit_settings, handler).refresh_token("rt")
    assert exc_info.value.status_code == 400


async def test_revoke_posts_token(intuit_settings):
    bodies: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200)

    await _oauth_client(intuit_settings, handler).revoke_token("at")
    assert bodies == [{"token": "at"}]


async def test_timeout_maps_to_upstream_unavailable(intuit_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(UpstreamUnavailableError):
        await _oauth_client(intuit_settings, handler).refresh_token("rt")


async def test_query_targets_realm_with_bearer_token(intuit_settings):
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"QueryResponse": {}})

    client = QuickBooksClient(intuit_settings, transport=httpx.MockTransport(handler))
    result = await client.query(
        realm_id="9130", access_token="at", query="SELECT * FROM Vendor"
    )

    assert result == {"QueryResponse": {}}
    assert seen["path"] == "/v3/company/9130/query"
    assert seen["params"]["query"] == "SELECT * FROM Vendor"
    assert seen["params"]["minorversion"] == "75"
    assert seen["auth"] == "Bearer at"


async def test_api_error_carries_status_and_body(intuit_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text='{"Fault": "AuthenticationFailed"}')

    client = QuickBooksClient(intuit_settings, transport=httpx.MockTransport(handler))
    with pytest.raises(QuickBooksAPIError) as exc_info:
        await client.batch(realm_id="9130", access_token="at", payload={})
    assert exc_info.value.status_code == 401
    assert "AuthenticationFailed" in exc_info.value.body


async def test_non_json_success_body_raises_api_error(intuit_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    client = QuickBooksClient(intuit_settings, transport=httpx.MockTransport(handler))
    with pytest.raises(QuickBooksAPIError) as exc_info:
        await client.query(realm_id="9130", access_token="at", query="SELECT * FROM Vendor")
    assert exc_info.value.status_code == 200
    assert "maintenance" in exc_info.value.body
