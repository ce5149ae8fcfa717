import structlog
from marketplace.utils.logging import add_context, clear_context, get_log_level, redact_secrets


class TestLogLevel:
    def test_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"

    def test_explicit_override(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert get_log_level() == "ERROR"


class TestRedaction:
    def test_signature_is_masked(self):
        event = redact_secrets(None, "info", {"event": "Webhook received", "stripe_signature": "t=1,v1=abc"})
        assert event["stripe_signature"] == "[redacted]"
        assert event["event"] == "Webhook received"


class TestContext:
    def test_bound_context_is_cleared(self):
        clear_context()
        add_context(stripe_event_id="evt_1")
        assert structlog.contextvars.get_contextvars() == {"stripe_event_id": "evt_1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
