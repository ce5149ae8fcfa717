"""Side-effect channel registry: email and analytics adapters.

Provides singleton access to the channel adapters. Fake adapters are used by
default; a real provider is installed with set_email_channel() /
set_analytics_channel() at application start-up.
"""

from marketplace.effects.ports import AnalyticsPort, EmailPort

_email_channel: EmailPort | None = None
_analytics_channel: AnalyticsPort | None = None


def get_email_channel() -> EmailPort:
    global _email_channel
    if _email_channel is None:
        from marketplace.effects.fakes import FakeEmailAdapter

        _email_channel = FakeEmailAdapter()
    return _email_channel


def set_email_channel(channel: EmailPort) -> None:
    global _email_channel
    _email_channel = channel


def get_analytics_channel() -> AnalyticsPort:
    global _analytics_channel
    if _analytics_channel is None:
        from marketplace.effects.fakes import FakeAnalyticsAdapter

        _analytics_channel = FakeAnalyticsAdapter()
    return _analytics_channel


def set_analytics_channel(channel: AnalyticsPort) -> None:
    global _analytics_channel
    _analytics_channel = channel


def reset_channels() -> None:
    """Reset all channel singletons (useful for testing)."""
    global _email_channel, _analytics_channel
    _email_channel = None
    _analytics_channel = None
