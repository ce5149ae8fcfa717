"""Payment provider factory.

Provides get_provider() / set_provider() to swap implementations:
- StripeProvider in production-like environments or when STRIPE_API_KEY is set
- FakePaymentProvider otherwise (development and testing)
"""

from marketplace.config import Settings
from marketplace.gateway.fake_adapter import FakePaymentProvider
from marketplace.gateway.port import PaymentProvider

_current_provider: PaymentProvider | None = None


def get_provider() -> PaymentProvider:
    """Return the current payment provider."""
    global _current_provider
    if _current_provider is None:
        settings = Settings.from_env()
        if settings.is_production_like or settings.stripe_api_key:
            from marketplace.gateway.stripe_adapter import StripeProvider

            _current_provider = StripeProvider(settings.stripe_api_key, settings.stripe_webhook_secret)
        else:
            _current_provider = FakePaymentProvider()
    return _current_provider


def set_provider(provider: PaymentProvider) -> None:
    """Override the active payment provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    """Reset to the default provider."""
    global _current_provider
    _current_provider = None
