"""
Workspace invitations.

Validation is read-only; marking an invitation used happens only through
``accept_invitation``.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, List
from urllib.parse import urlencode

from qbo_broker.clients.base import DocumentStore
from qbo_broker.clients.mailer import InvitationMailer
from qbo_broker.models.invitation import InvitationRecord
from qbo_broker.models.oauth import utcnow

logger = logging.getLogger(__name__)

INVITATION_COLLECTION = "invitations"


class InvitationError(Exception):
    """Base class for invitations that cannot be used."""


class InvitationNotFoundError(InvitationError):
    pass


class InvitationExpiredError(InvitationError):
    pass


class InvitationUsedError(InvitationError):
    pass


class InvitationService:
    """Create, email, validate and accept workspace invitations."""

    def __init__(
        self,
        *,
        store: DocumentStore,
        mailer: InvitationMailer,
        accept_url: str,
        ttl_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._mailer = mailer
        self._accept_url = accept_url
        self._ttl = timedelta(days=ttl_days)
        self._clock = clock

    async def send_invitation(
        self,
        *,
        tenant_id: str,
        inviter_id: str,
        invitee_email: str,
        invitee_role: str,
    ) -> InvitationRecord:
        now = self._clock()
        record = InvitationRecord(
            token=secrets.token_urlsafe(32),
            tenant_id=tenant_id,
            inviter_id=inviter_id,
            invitee_email=invitee_email,
            invitee_role=invitee_role,
            used=False,
            expiration_time=now + self._ttl,
            created_at=now,
        )
        self._store.put_item(
            INVITATION_COLLECTION, record.token, record.model_dump(mode="json")
        )

        link = f"{self._accept_url}?{urlencode({'token': record.token})}"
        await self._mailer.send_invitation(
            invitee_email=invitee_email,
            invitee_role=invitee_role,
            accept_link=link,
        )
        logger.info("Tenant %s invited a new %s", tenant_id, invitee_role)
        return record

    def validate_invitation(self, token: str) -> InvitationRecord:
        document = self._store.get_item(INVITATION_COLLECTION, token)
        if document is None:
            raise InvitationNotFoundError("Invitation not found.")

        record = InvitationRecord.model_validate(document)
        if self._clock() > record.expiration_time:
            raise InvitationExpiredError("Invitation has expired.")
        if record.used:
            raise InvitationUsedError("Invitation has already been used.")
        return record

    def accept_invitation(self, token: str, user_id: str) -> InvitationRecord:
        record = self.validate_invitation(token)
        accepted = record.model_copy(
            update={"used": True, "accepted_by": user_id, "accepted_at": self._clock()}
        )
        if not self._store.replace_item_if(
            INVITATION_COLLECTION, token, accepted.model_dump(mode="json"), used=False
        ):
            raise InvitationUsedError("Invitation has already been used.")
        logger.info("Invitation for tenant %s accepted by %s", record.tenant_id, user_id)
        return accepted

    def list_invitations(self, tenant_id: str) -> List[InvitationRecord]:
        documents = self._store.query_items(INVITATION_COLLECTION, tenant_id=tenant_id)
        records = [InvitationRecord.model_validate(doc) for doc in documents]
        return sorted(records, key=lambda record: record.created_at)


__all__ = [
    "INVITATION_COLLECTION",
    "InvitationError",
    "InvitationExpiredError",
    "InvitationNotFoundError",
    "InvitationService",
    "InvitationUsedError",
]
