"""Outbound side-effect channels.

Adapters report outcomes in their return value instead of raising, so the
dispatcher can log a failed delivery and move on. A raising adapter is still
contained by the dispatcher.
"""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        """Deliver one message to one recipient.

        Returns:
            dict with ``status`` ("sent" or "failed"), plus ``message_id`` on
            success or ``error`` on failure
        """
        ...


class AnalyticsPort(ABC):
    @abstractmethod
    def capture(
        self,
        distinct_id: str,
        event: str,
        properties: dict | None = None,
        groups: dict | None = None,
    ) -> dict:
        """Record one product-analytics event, optionally attributed to groups.

        Returns:
            dict with ``status`` ("captured" or "failed"), plus ``error`` on failure
        """
        ...
