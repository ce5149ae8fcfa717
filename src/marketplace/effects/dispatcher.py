"""Side-effect dispatcher: receipts and analytics that must never fail a webhook.

Every task runs behind a catch-all boundary: a broken mail provider or
analytics sink is logged and forgotten. With a scheduler (FastAPI's
``BackgroundTasks.add_task``) tasks run after the response has been sent;
without one they run inline.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from marketplace.config import Settings
from marketplace.effects import get_analytics_channel, get_email_channel
from marketplace.effects.ports import AnalyticsPort, EmailPort
from marketplace.effects.templates import get_template

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmailTask:
    template: str
    recipients: tuple[str, ...]
    context: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AnalyticsTask:
    event: str
    distinct_id: str
    properties: dict = field(default_factory=dict)
    groups: dict | None = None


def unique_recipients(addresses: Iterable[str | None]) -> tuple[str, ...]:
    """Drop blanks and case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    unique = []
    for address in addresses:
        address = (address or "").strip()
        if not address or address.casefold() in seen:
            continue
        seen.add(address.casefold())
        unique.append(address)
    return tuple(unique)


class SideEffectDispatcher:
    def __init__(
        self,
        settings: Settings | None = None,
        email: EmailPort | None = None,
        analytics: AnalyticsPort | None = None,
        scheduler: Callable | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self._email = email
        self._analytics = analytics
        self.scheduler = scheduler

    @property
    def email(self) -> EmailPort:
        return self._email or get_email_channel()

    @property
    def analytics(self) -> AnalyticsPort:
        return self._analytics or get_analytics_channel()

    def dispatch(self, task: EmailTask | AnalyticsTask) -> None:
        """Run or schedule a task. Never raises."""
        try:
            if self.scheduler is not None:
                self.scheduler(self.run, task)
            else:
                self.run(task)
        except Exception:
            logger.exception("Side effect could not be scheduled", task=type(task).__name__)

    def run(self, task: EmailTask | AnalyticsTask) -> None:
        try:
            if isinstance(task, EmailTask):
                self._send_email(task)
            elif isinstance(task, AnalyticsTask):
                self._capture(task)
            else:
                raise TypeError(f"Unknown side-effect task: {task!r}")
        except Exception:
            logger.exception("Side effect failed", task=type(task).__name__)

    # -------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------
    def _send_email(self, task: EmailTask) -> None:
        if not self.settings.email_enabled:
            logger.info("Email disabled, skipping", template=task.template)
            return

        recipients = unique_recipients(task.recipients)
        if not recipients:
            logger.info("Email has no recipients, skipping", template=task.template)
            return

        rendered = get_template(task.template).render(task.context)
        for recipient in recipients:
            try:
                result = self.email.send(to=recipient, subject=rendered["subject"], body=rendered["body"])
            except Exception:
                logger.exception("Email send raised", template=task.template, to=recipient)
                continue

            if result.get("status") == "sent":
                logger.info("Email sent", template=task.template, to=recipient, message_id=result.get("message_id"))
            else:
                logger.warning("Email send failed", template=task.template, to=recipient, error=result.get("error"))

    def _capture(self, task: AnalyticsTask) -> None:
        if not self.settings.analytics_enabled:
            logger.info("Analytics disabled, skipping", analytics_event=task.event)
            return

        result = self.analytics.capture(
            distinct_id=task.distinct_id,
            event=task.event,
            properties=task.properties,
            groups=task.groups,
        )
        if result.get("status") != "captured":
            logger.warning("Analytics capture failed", analytics_event=task.event, error=result.get("error"))
