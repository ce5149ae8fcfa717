"""User aggregate root: the buyer or seller contact behind an account."""

from datetime import UTC, datetime

from protean.fields import DateTime, String

from marketplace.domain import marketplace


@marketplace.aggregate
class User:
    email: String(max_length=255, required=True)
    username: String(max_length=100)
    first_name: String(max_length=100)
    created_at: DateTime()

    @classmethod
    def register(cls, email, username=None, first_name=None):
        return cls(email=email, username=username, first_name=first_name, created_at=datetime.now(UTC))

    @property
    def greeting_name(self) -> str | None:
        return self.first_name or self.username
