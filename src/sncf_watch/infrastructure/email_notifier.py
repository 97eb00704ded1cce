from __future__ import annotations

import asyncio
import logging
import smtplib
from collections.abc import Sequence
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sncf_watch.domain.entities import JourneyOption, Snapshot
from sncf_watch.domain.exceptions import NotifyError
from sncf_watch.infrastructure.email_templates import render_confirmation, render_notification
from sncf_watch.infrastructure.settings import Settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 30  # seconds


class EmailNotifier:
    """Sends notification and confirmation emails over SMTP.

    smtplib is blocking, so every send runs in a worker thread.
    """

    def __init__(self, settings: Settings) -> None:
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._username = settings.smtp_username
        self._password = settings.smtp_password
        self._use_ssl = settings.smtp_use_ssl
        self._from = settings.email_from or settings.smtp_username

    async def notify(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: date,
        new_options: Sequence[JourneyOption],
        preferred_time: str | None = None,
    ) -> None:
        subject, html = render_notification(
            origin, destination, travel_date, new_options, preferred_time
        )
        await self.send(email, subject, html)
        logger.info("Notification email sent to %s (%d new options)", email, len(new_options))

    async def confirm(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: date,
        initial_snapshot: Snapshot | None = None,
        preferred_time: str | None = None,
    ) -> None:
        subject, html = render_confirmation(
            origin, destination, travel_date, initial_snapshot, preferred_time
        )
        await self.send(email, subject, html)
        logger.info("Confirmation email sent to %s", email)

    async def send(self, to: str, subject: str, html: str) -> None:
        """Deliver one HTML email. Raises NotifyError on any transport failure."""
        if not self._username or not self._password:
            raise NotifyError("SMTP credentials are not configured")
        message = self._build_message(to, subject, html)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifyError(f"Cannot send email to {to}: {exc}") from exc

    def _build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self._from
        message["To"] = to
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    def _deliver(self, message: MIMEMultipart) -> None:
        if self._use_ssl:
            with smtplib.SMTP_SSL(self._host, self._port, timeout=SMTP_TIMEOUT) as server:
                server.login(self._username, self._password)
                server.send_message(message)
            return
        with smtplib.SMTP(self._host, self._port, timeout=SMTP_TIMEOUT) as server:
            server.starttls()
            server.login(self._username, self._password)
            server.send_message(message)
