from __future__ import annotations

from datetime import timedelta

import pytest

from qbo_broker.core.config import MailSettings
from qbo_broker.clients.mailer import InvitationMailer
from qbo_broker.services.invitations import (
    INVITATION_COLLECTION,
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationService,
    InvitationUsedError,
)


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_invitation(self, **kwargs) -> str:
        self.sent.append(kwargs)
        return "ok"


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def service(memory_store, mailer, clock) -> InvitationService:
    return InvitationService(
        store=memory_store,
        mailer=mailer,
        accept_url="https://app.example.com/accept",
        ttl_days=7,
        clock=clock,
    )


async def _invite(service, tenant_id: str = "w1"):
    return await service.send_invitation(
        tenant_id=tenant_id,
        inviter_id="owner-1",
        invitee_email="new@example.com",
        invitee_role="accountant",
    )


@pytest.mark.anyio
async def test_send_persists_and_emails_link(service, mailer, memory_store):
    record = await _invite(service)

    assert (INVITATION_COLLECTION, record.token) in memory_store.documents
    assert record.used is False
    assert mailer.sent[0]["invitee_email"] == "new@example.com"
    assert mailer.sent[0]["accept_link"] == (
        f"https://app.example.com/accept?token={record.token}"
    )


@pytest.mark.anyio
async def test_validate_is_read_only(service):
    record = await _invite(service)

    first = service.validate_invitation(record.token)
    second = service.validate_invitation(record.token)

    assert first.tenant_id == second.tenant_id == "w1"
    assert second.used is False


@pytest.mark.anyio
async def test_accept_marks_used_once(service):
    record = await _invite(service)

    accepted = service.accept_invitation(record.token, "user-7")
    assert accepted.used is True
    assert accepted.accepted_by == "user-7"

    with pytest.raises(InvitationUsedError):
        service.validate_invitation(record.token)
    with pytest.raises(InvitationUsedError):
        service.accept_invitation(record.token, "user-8")


@pytest.mark.anyio
async def test_concurrent_accept_only_one_wins(service, memory_store, monkeypatch):
    record = await _invite(service)
    stale = service.validate_invitation(record.token)
    service.accept_invitation(record.token, "user-7")

    # A second acceptor that validated before the first one wrote.
    monkeypatch.setattr(service, "validate_invitation", lambda token: stale)
    with pytest.raises(InvitationUsedError):
        service.accept_invitation(record.token, "user-8")

    stored = memory_store.documents[(INVITATION_COLLECTION, record.token)]
    assert stored["accepted_by"] == "user-7"


@pytest.mark.anyio
async def test_expired_invitation_is_rejected(service, clock):
    record = await _invite(service)
    clock.advance(days=7, seconds=1)

    with pytest.raises(InvitationExpiredError):
        service.validate_invitation(record.token)


def test_unknown_invitation_is_rejected(service):
    with pytest.raises(InvitationNotFoundError):
        service.validate_invitation("missing")


@pytest.mark.anyio
async def test_list_invitations_filters_by_tenant(service, clock):
    await _invite(service, "w1")
    clock.advance(minutes=1)
    await _invite(service, "w1")
    await _invite(service, "w2")

    listed = service.list_invitations("w1")
    assert len(listed) == 2
    assert listed[0].created_at < listed[1].created_at


@pytest.mark.anyio
async def test_dry_run_mailer_skips_smtp(monkeypatch):
    mailer = InvitationMailer(MailSettings(dry_run=True))

    def _fail(message):  # pragma: no cover - must not be called
        raise AssertionError("SMTP should not be used in dry-run mode")

    monkeypatch.setattr(mailer, "_send_email_sync", _fail)
    result = await mailer.send_invitation(
        invitee_email="new@example.com",
        invitee_role="member",
        accept_link="https://app.example.com/accept?token=t",
    )
    assert result.startswith("Dry-run")


@pytest.mark.anyio
async def test_mailer_hands_message_to_smtp(monkeypatch):
    mailer = InvitationMailer(MailSettings(dry_run=False, smtp_sender="ops@example.com"))
    sent = []
    monkeypatch.setattr(mailer, "_send_email_sync", sent.append)

    await mailer.send_invitation(
        invitee_email="new@example.com",
        invitee_role="member",
        accept_link="https://app.example.com/accept?token=t",
    )

    assert sent[0]["To"] == "new@example.com"
    assert sent[0]["From"] == "ops@example.com"
    assert "token=t" in sent[0].get_content()
