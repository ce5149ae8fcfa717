"""Runtime settings read from the environment.

PROTEAN_ENV selects the environment the same way it selects the Protean
config overlay. Production-like environments surface unrecovered webhook
failures as server errors so the provider redelivers; development-like
environments acknowledge them to keep local redelivery quiet.
"""

import os
from dataclasses import dataclass

PRODUCTION_LIKE_ENVIRONMENTS = frozenset({"production", "staging"})

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    stripe_api_key: str | None = None
    stripe_webhook_secret: str | None = None
    email_enabled: bool = True
    analytics_enabled: bool = True
    support_url: str = "https://abandonedhobby.com/support"
    insufficient_stock_retries: int = 2
    refund_include_pending: bool = False

    @property
    def is_production_like(self) -> bool:
        return self.environment in PRODUCTION_LIKE_ENVIRONMENTS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=(os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development").lower(),
            stripe_api_key=os.getenv("STRIPE_API_KEY") or None,
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET") or None,
            email_enabled=_flag("EMAIL_NOTIFICATIONS_ENABLED", True),
            analytics_enabled=_flag("ANALYTICS_ENABLED", True),
            support_url=os.getenv("SUPPORT_URL", "https://abandonedhobby.com/support"),
            insufficient_stock_retries=int(os.getenv("INVENTORY_INSUFFICIENT_RETRIES", "2")),
            refund_include_pending=_flag("REFUND_STATUS_INCLUDE_PENDING", False),
        )
