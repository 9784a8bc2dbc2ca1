"""Notifier collaborator for permit status changes.

Delivery (email, SMS) belongs to the platform's notification service. This
module only hands it (permit_id, new_status, recipient_role); a failure here
never undoes the transition that triggered it."""
import logging
from typing import Protocol

import httpx

from app.config import get_settings
from app.models.move_permit import PermitStatus

logger = logging.getLogger(__name__)


class PermitNotifier(Protocol):
    def notify(self, permit_id: str, new_status: PermitStatus, recipient_role: str) -> None: ...


class LoggingNotifier:
    """Default when no webhook is configured: record what would be sent."""

    def notify(self, permit_id: str, new_status: PermitStatus, recipient_role: str) -> None:
        logger.info(
            "Move permit notification: permit=%s status=%s recipient=%s",
            permit_id, PermitStatus(new_status).value, recipient_role,
        )


class WebhookNotifier:
    """POST each status change as JSON to the notification service."""

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.Client | None = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def notify(self, permit_id: str, new_status: PermitStatus, recipient_role: str) -> None:
        payload = {
            "event": "move_permit.status_changed",
            "permit_id": permit_id,
            "status": PermitStatus(new_status).value,
            "recipient_role": recipient_role,
        }
        if self._client is not None:
            r = self._client.post(self.url, json=payload, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(self.url, json=payload)
        r.raise_for_status()
        logger.info("Move permit webhook sent: permit=%s status=%s", permit_id, payload["status"])


def notify_safely(notifier: PermitNotifier, permit_id: str, new_status: PermitStatus, recipient_role: str) -> bool:
    """Fire-and-forget: returns False (and logs) instead of raising."""
    try:
        notifier.notify(permit_id, new_status, recipient_role)
        return True
    except Exception:
        logger.exception(
            "Move permit notification failed: permit=%s status=%s recipient=%s",
            permit_id, PermitStatus(new_status).value, recipient_role,
        )
        return False


def get_notifier() -> PermitNotifier:
    settings = get_settings()
    if settings.permit_webhook_url:
        return WebhookNotifier(settings.permit_webhook_url, timeout=settings.permit_webhook_timeout_seconds)
    return LoggingNotifier()
