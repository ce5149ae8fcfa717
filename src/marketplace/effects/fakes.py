"""In-memory channel adapters for development and tests.

Each fake records what it was asked to do and can be switched into a failing
mode with ``configure(should_succeed=False)``.
"""

from uuid import uuid4

from marketplace.effects.ports import AnalyticsPort, EmailPort


class _RecordingChannel:
    default_failure = "Delivery failed"

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = self.default_failure

    def configure(self, should_succeed: bool = True, failure_reason: str | None = None):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason or self.default_failure

    def _failed(self) -> dict:
        return {"status": "failed", "error": self.failure_reason}

    def reset(self):
        self.configure()


class FakeEmailAdapter(_RecordingChannel, EmailPort):
    default_failure = "Email delivery failed"

    def __init__(self):
        super().__init__()
        self.sent_emails: list[dict] = []

    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        if not self.should_succeed:
            return self._failed()

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, "to": to, "subject": subject, "body": body})
        return {"status": "sent", "message_id": message_id}

    def to(self, address: str) -> list[dict]:
        """Messages sent to one address, case-insensitively."""
        return [email for email in self.sent_emails if email["to"].casefold() == address.casefold()]

    def reset(self):
        super().reset()
        self.sent_emails.clear()


class FakeAnalyticsAdapter(_RecordingChannel, AnalyticsPort):
    default_failure = "Analytics capture failed"

    def __init__(self):
        super().__init__()
        self.captured: list[dict] = []

    def capture(
        self,
        distinct_id: str,
        event: str,
        properties: dict | None = None,
        groups: dict | None = None,
    ) -> dict:
        if not self.should_succeed:
            return self._failed()

        self.captured.append(
            {
                "distinct_id": distinct_id,
                "event": event,
                "properties": dict(properties or {}),
                "groups": dict(groups or {}),
            }
        )
        return {"status": "captured"}

    def events(self, name: str) -> list[dict]:
        return [c for c in self.captured if c["event"] == name]

    def reset(self):
        super().reset()
        self.captured.clear()
