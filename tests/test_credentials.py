from __future__ import annotations

from datetime import timedelta

from qbo_broker.models.oauth import CredentialRecord
from qbo_broker.services.credentials import (
    CREDENTIAL_COLLECTION,
    CredentialStore,
    is_expired,
)


def _record(clock, **overrides) -> CredentialRecord:
    values = {
        "tenant_id": "w1",
        "access_token": "at",
        "refresh_token": "rt",
        "expires_in_seconds": 3600,
        "issued_at": clock(),
        "realm_id": "9130",
    }
    values.update(overrides)
    return CredentialRecord(**values)


def test_is_expired_boundary(clock) -> None:
    record = _record(clock)
    expiry = clock() + timedelta(seconds=3600)

    assert not is_expired(record, expiry - timedelta(seconds=1))
    assert is_expired(record, expiry)
    assert is_expired(record, expiry + timedelta(seconds=1))


def test_is_expired_honours_skew(clock) -> None:
    record = _record(clock)
    almost = clock() + timedelta(seconds=3590)

    assert not is_expired(record, almost)
    assert is_expired(record, almost, skew_seconds=60)


def test_load_missing_tenant_returns_none(memory_store, clock) -> None:
    assert CredentialStore(memory_store, clock=clock).load("nobody") is None


def test_save_overwrites_tokens_and_keeps_unrelated_fields(memory_store, clock) -> None:
    store = CredentialStore(memory_store, clock=clock)
    store.save(_record(clock))
    memory_store.documents[(CREDENTIAL_COLLECTION, "w1")]["connected_by"] = "user-1"
    created_at = memory_store.documents[(CREDENTIAL_COLLECTION, "w1")]["created_at"]

    clock.advance(hours=2)
    store.save(_record(clock, access_token="at-2", refresh_token="rt-2"))

    document = memory_store.documents[(CREDENTIAL_COLLECTION, "w1")]
    assert document["access_token"] == "at-2"
    assert document["refresh_token"] == "rt-2"
    assert document["connected_by"] == "user-1"
    assert document["created_at"] == created_at
    assert document["updated_at"] != created_at

    loaded = store.load("w1")
    assert loaded is not None
    assert loaded.access_token == "at-2"
    assert loaded.issued_at == clock()


def test_delete_removes_record(memory_store, clock) -> None:
    store = CredentialStore(memory_store, clock=clock)
    store.save(_record(clock))

    assert store.delete("w1") is True
    assert store.load("w1") is None
    assert store.delete("w1") is False
