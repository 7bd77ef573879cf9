"""
Notification dispatch for leave workflow events.

The workflow calls NotificationDispatcher.notify() after a mutation has been
stored. Delivery is scheduled as a FastAPI background task, so it runs after
the response is sent and cannot fail the request. Problems that are visible
up front (no recipient address, email not configured) are returned to the
caller as warnings; anything that goes wrong during delivery is logged only.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends

from app.core.config import settings
from app.core.email import send_email

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    DECISION_MADE = "decision_made"


class Notifier(ABC):
    """Delivers one message. Subclasses decide the transport."""

    def precheck(self, to_email: Optional[str]) -> Optional[str]:
        if not to_email:
            return "Recipient has no email address, notification not sent"
        return None

    @abstractmethod
    async def notify(self, to_email: str, kind: NotificationKind, payload: dict) -> None: ...


class EmailNotifier(Notifier):
    TEMPLATE_SETTINGS = {
        NotificationKind.APPLICATION_SUBMITTED: "EMAILJS_APPLICATION_TEMPLATE_ID",
        NotificationKind.DECISION_MADE: "EMAILJS_DECISION_TEMPLATE_ID",
    }

    def template_for(self, kind: NotificationKind) -> str:
        return getattr(settings, self.TEMPLATE_SETTINGS[kind])

    def precheck(self, to_email):
        warning = super().precheck(to_email)
        if warning:
            return warning
        if not settings.email_configured:
            return "Email delivery is not configured, notification not sent"
        return None

    async def notify(self, to_email, kind, payload):
        await send_email(to_email, self.template_for(kind), {"kind": kind.value, **payload})


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier


class NotificationDispatcher:
    def __init__(self, notifier: Notifier, schedule: Callable[..., None]):
        self.notifier = notifier
        self.schedule = schedule
        self.warnings: list[str] = []

    def notify(self, to_email: Optional[str], kind: NotificationKind, payload: dict) -> None:
        warning = self.notifier.precheck(to_email)
        if warning:
            logger.warning("%s (%s)", warning, kind.value)
            self.warnings.append(warning)
            return
        self.schedule(self._deliver, to_email, kind, payload)

    async def _deliver(self, to_email: str, kind: NotificationKind, payload: dict) -> None:
        # Runs detached from the request; nothing may escape from here.
        try:
            await self.notifier.notify(to_email, kind, payload)
        except Exception:
            logger.exception("Notification %s to %s failed", kind.value, to_email)


def get_dispatcher(
    background_tasks: BackgroundTasks,
    notifier: Notifier = Depends(get_notifier),
) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, background_tasks.add_task)
