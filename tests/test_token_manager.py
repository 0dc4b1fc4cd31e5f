from __future__ import annotations

from datetime import timedelta

import pytest

from _fakes import FakeIntuitOAuthClient
from qbo_broker.clients.intuit_auth import (
    OAuthTokenExchangeError,
    UpstreamUnavailableError,
)
from qbo_broker.models.oauth import CredentialRecord
from qbo_broker.services.credentials import CREDENTIAL_COLLECTION, CredentialStore
from qbo_broker.services.oauth_state import (
    InvalidStateError,
    OAuthStateRegistry,
    StateExpiredError,
)
from qbo_broker.services.token_manager import (
    AuthorizationCallbackError,
    NotConnectedError,
    QuickBooksTokenManager,
    RefreshFailedError,
)

pytestmark = pytest.mark.anyio

CALLBACK = "https://example.com/api/auth/quickbooks/callback"


@pytest.fixture
def oauth_client() -> FakeIntuitOAuthClient:
    return FakeIntuitOAuthClient()


@pytest.fixture
def credentials(memory_store, clock) -> CredentialStore:
    return CredentialStore(memory_store, clock=clock)


@pytest.fixture
def manager(memory_store, clock, oauth_client, credentials) -> QuickBooksTokenManager:
    return QuickBooksTokenManager(
        oauth_client=oauth_client,
        state_registry=OAuthStateRegistry(memory_store, clock=clock),
        credential_store=credentials,
        clock=clock,
    )


async def _connect(manager, oauth_client, tenant_id: str = "w1") -> None:
    manager.begin_authorization(tenant_id, "user-1")
    state = oauth_client.states[-1]
    await manager.complete_authorization(
        f"{CALLBACK}?code=abc&state={state}&realmId=9130"
    )


async def test_authorize_then_token_needs_no_refresh(manager, oauth_client, credentials):
    uri = manager.begin_authorization("w1", "user-1")
    state = oauth_client.states[-1]
    assert state in uri

    await manager.complete_authorization(
        f"{CALLBACK}?code=abc&state={state}&realmId=9130"
    )

    assert oauth_client.codes == ["abc"]
    stored = credentials.load("w1")
    assert stored is not None
    assert stored.expires_in_seconds == 3600
    assert stored.realm_id == "9130"

    assert await manager.get_valid_access_token("w1") == "access-original"
    assert oauth_client.refreshed == []


async def test_callback_state_is_consumed(manager, oauth_client):
    await _connect(manager, oauth_client)
    state = oauth_client.states[-1]

    with pytest.raises(InvalidStateError):
        await manager.complete_authorization(f"{CALLBACK}?code=again&state={state}")
    assert oauth_client.codes == ["abc"]


async def test_invalid_state_writes_no_credential(manager, oauth_client, memory_store):
    with pytest.raises(InvalidStateError):
        await manager.complete_authorization(f"{CALLBACK}?code=abc&state=forged")

    assert oauth_client.codes == []
    assert not [key for key in memory_store.documents if key[0] == CREDENTIAL_COLLECTION]


async def test_expired_state_is_rejected(manager, oauth_client, clock):
    manager.begin_authorization("w1", "user-1")
    clock.advance(minutes=10, seconds=1)

    with pytest.raises(StateExpiredError):
        await manager.complete_authorization(
            f"{CALLBACK}?code=abc&state={oauth_client.states[-1]}"
        )
    assert oauth_client.codes == []


async def test_callback_without_code_is_rejected(manager, oauth_client):
    manager.begin_authorization("w1", "user-1")

    with pytest.raises(AuthorizationCallbackError):
        await manager.complete_authorization(
            f"{CALLBACK}?error=access_denied&state={oauth_client.states[-1]}"
        )
    assert oauth_client.codes == []


async def test_callback_without_realm_is_rejected_before_exchange(
    manager, oauth_client, memory_store
):
    manager.begin_authorization("w1", "user-1")

    with pytest.raises(AuthorizationCallbackError):
        await manager.complete_authorization(
            f"{CALLBACK}?code=abc&state={oauth_client.states[-1]}"
        )
    assert oauth_client.codes == []
    assert not [key for key in memory_store.documents if key[0] == CREDENTIAL_COLLECTION]
    assert await manager.check_connection("w1") is False


async def test_missing_credential_is_not_connected(manager):
    with pytest.raises(NotConnectedError):
        await manager.get_valid_access_token("w1")
    assert await manager.check_connection("w1") is False


async def test_expired_credential_refreshes_once_and_persists_rotation(
    manager, oauth_client, credentials, clock
):
    credentials.save(
        CredentialRecord(
            tenant_id="w1",
            access_token="stale-access",
            refresh_token="stale-refresh",
            expires_in_seconds=3600,
            issued_at=clock() - timedelta(seconds=7200),
            realm_id="9130",
        )
    )

    token = await manager.get_valid_access_token("w1")

    assert token == "access-rotated-1"
    assert oauth_client.refreshed == ["stale-refresh"]
    stored = credentials.load("w1")
    assert stored.access_token == "access-rotated-1"
    assert stored.refresh_token == "refresh-rotated-1"
    assert stored.issued_at == clock()
    assert stored.realm_id == "9130"

    assert await manager.get_valid_access_token("w1") == "access-rotated-1"
    assert len(oauth_client.refreshed) == 1


async def test_refresh_happens_at_exact_expiry(manager, oauth_client, clock):
    await _connect(manager, oauth_client)
    clock.advance(seconds=3600)

    assert await manager.get_valid_access_token("w1") == "access-rotated-1"


async def test_skew_refreshes_early(memory_store, clock, oauth_client, credentials):
    manager = QuickBooksTokenManager(
        oauth_client=oauth_client,
        state_registry=OAuthStateRegistry(memory_store, clock=clock),
        credential_store=credentials,
        expiry_skew_seconds=60,
        clock=clock,
    )
    await _connect(manager, oauth_client)
    clock.advance(seconds=3550)

    assert await manager.get_valid_access_token("w1") == "access-rotated-1"


async def test_refresh_rejection_leaves_stale_record(manager, oauth_client, credentials, clock):
    await _connect(manager, oauth_client)
    clock.advance(hours=2)
    oauth_client.refresh_error = OAuthTokenExchangeError(
        '{"error":"invalid_grant"}', status_code=400
    )

    with pytest.raises(RefreshFailedError):
        await manager.get_valid_access_token("w1")

    stored = credentials.load("w1")
    assert stored.access_token == "access-original"
    assert await manager.check_connection("w1") is False


async def test_refresh_outage_propagates_without_mutation(
    manager, oauth_client, credentials, clock
):
    await _connect(manager, oauth_client)
    clock.advance(hours=2)
    oauth_client.refresh_error = UpstreamUnavailableError("timeout")

    with pytest.raises(UpstreamUnavailableError):
        await manager.get_valid_access_token("w1")
    assert credentials.load("w1").refresh_token == "refresh-original"


async def test_disconnect_revokes_and_deletes(manager, oauth_client, credentials):
    await _connect(manager, oauth_client)

    assert await manager.disconnect("w1") is True

    assert oauth_client.revoked == ["access-original"]
    assert credentials.load("w1") is None


@pytest.mark.parametrize(
    "error",
    [
        OAuthTokenExchangeError("server error", status_code=500),
        UpstreamUnavailableError("timeout"),
    ],
)
async def test_disconnect_deletes_even_when_revoke_fails(
    manager, oauth_client, credentials, error
):
    await _connect(manager, oauth_client)
    oauth_client.revoke_error = error

    assert await manager.disconnect("w1") is True
    assert credentials.load("w1") is None


async def test_disconnect_without_credential_is_noop(manager, oauth_client):
    assert await manager.disconnect("w1") is False
    assert oauth_client.revoked == []
