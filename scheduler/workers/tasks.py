# scheduler/workers/tasks.py

from __future__ import annotations

import smtplib
from typing import List

from celery import Celery
from celery.utils.log import get_task_logger

from scheduler.config import settings
from scheduler.core.notifications.email import send_via_smtp

log = get_task_logger(__name__)

celery_app = Celery(
    "appointment-scheduler",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["scheduler.workers.tasks"],
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
)
celery_app.conf.update(
    task_track_started=True,
    timezone="UTC",
    broker_connection_retry_on_startup=True,
)


@celery_app.task(
    name="scheduler.workers.tasks.send_email_notification_task",
    bind=True,
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_kwargs={"max_retries": 3},
    retry_backoff=True,
    retry_backoff_max=60 * 5,
    retry_jitter=True,
)
def send_email_notification_task(self, recipients: List[str], subject: str, message: str) -> str:
    """Отправляет письмо участникам встречи через SMTP."""
    task_id = self.request.id
    if not recipients:
        log.error("[email %s] Empty recipients list for '%s', nothing to send", task_id, subject)
        return "SKIPPED_NO_RECIPIENTS"
    if not settings.SMTP_HOST:
        log.warning("[email %s] SMTP_HOST not configured, skipping '%s'", task_id, subject)
        return "SKIPPED_NO_SMTP"

    log.info("[email %s] Sending '%s' to %d recipients", task_id, subject, len(recipients))
    send_via_smtp(list(recipients), subject, message)
    return f"SENT:{len(recipients)}"


__all__ = ["celery_app", "send_email_notification_task"]
