# scheduler/core/notifications/email.py

"""
Email notifications: message rendering, SMTP delivery and the notifier that
hands messages over to the Celery worker.
"""

from __future__ import annotations

import asyncio
import functools
import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import List, Sequence

from scheduler.config import settings

from .base import BaseNotifier

log = logging.getLogger(__name__)

_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; padding: 20px; background-color: #f4f4f4;">
    <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 30px;">
        <h2 style="color: #333; border-bottom: 1px solid #ddd; padding-bottom: 10px;">{subject}</h2>
        <p style="color: #555; font-size: 16px;">{message}</p>
        <p style="margin-top: 40px; font-size: 14px; color: #999;">This is an automated email from your appointment system.</p>
    </div>
</div>
"""


def render_html(subject: str, message: str) -> str:
    return _HTML_TEMPLATE.format(subject=html.escape(subject), message=html.escape(message))


def build_message(recipients: Sequence[str], subject: str, message: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.EMAIL_FROM_ADDRESS
    msg["To"] = ", ".join(recipients)
    msg.set_content(message)
    msg.add_alternative(render_html(subject, message), subtype="html")
    return msg


def send_via_smtp(recipients: List[str], subject: str, message: str) -> None:
    """
    Blocking SMTP delivery; runs inside the Celery worker.

    Raises:
        smtplib.SMTPException | OSError: Delivery failed (the task retries).
    """
    msg = build_message(recipients, subject, message)
    host, port = settings.SMTP_HOST, settings.SMTP_PORT
    context = ssl.create_default_context()

    if port == 465:
        server = smtplib.SMTP_SSL(host, port, context=context, timeout=30)
    else:
        server = smtplib.SMTP(host, port, timeout=30)
    try:
        if port != 465 and settings.SMTP_USE_TLS:
            server.starttls(context=context)
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
        server.send_message(msg)
    finally:
        server.quit()
    log.info("Email '%s' sent via %s to %d recipients", subject, host, len(recipients))


class CeleryEmailNotifier(BaseNotifier):
    """Queues the email for the worker; delivery itself is retried there."""

    name = "celery"

    async def notify(self, recipients: Sequence[str], subject: str, body: str) -> None:
        # Импорт внутри метода: воркер импортирует этот модуль сам
        from scheduler.workers.tasks import send_email_notification_task

        loop = asyncio.get_running_loop()
        # apply_async может блокироваться на брокере, поэтому в executor
        result = await loop.run_in_executor(
            None,
            functools.partial(
                send_email_notification_task.apply_async,
                kwargs={"recipients": list(recipients), "subject": subject, "message": body},
            ),
        )
        log.info("Queued email '%s' for %d recipients (task %s)", subject, len(recipients), result.id)


__all__ = ["CeleryEmailNotifier", "build_message", "render_html", "send_via_smtp"]
