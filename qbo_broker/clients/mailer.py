"""SMTP delivery for workspace invitation emails."""

from __future__ import annotations

import asyncio
import logging
from email.message import EmailMessage

from qbo_broker.core.config import MailSettings

logger = logging.getLogger(__name__)


class InvitationMailer:
    """Render and send invitation emails."""

    def __init__(self, settings: MailSettings) -> None:
        self._settings = settings

    async def send_invitation(
        self, *, invitee_email: str, invitee_role: str, accept_link: str
    ) -> str:
        message = EmailMessage()
        message["From"] = self._settings.smtp_sender
        message["To"] = invitee_email
        message["Subject"] = "You have been invited to a workspace"
        message.set_content(
            f"You have been invited to join a workspace as {invitee_role}.\n\n"
            f"Accept the invitation here:\n{accept_link}\n"
        )

        if self._settings.dry_run:
            logger.info(
                "[dry-run] Would send invitation to %s via %s:%s",
                invitee_email,
                self._settings.smtp_host,
                self._settings.smtp_port,
            )
            return "Dry-run: email send skipped"

        await asyncio.to_thread(self._send_email_sync, message)
        return "Email accepted for delivery"

    def _send_email_sync(self, message: EmailMessage) -> None:
        """Blocking email sender extracted to ease testing."""

        import smtplib

        with smtplib.SMTP(self._settings.smtp_host, self._settings.smtp_port) as smtp:
            smtp.send_message(message)


__all__ = ["InvitationMailer"]
