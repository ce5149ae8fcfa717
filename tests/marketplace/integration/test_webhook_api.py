"""Integration tests for the Stripe webhook endpoint."""

import asyncio
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace.api import order_router, webhook_router
from marketplace.catalogue.product import Product
from marketplace.order.order import Order
from marketplace.webhook.admitter import EventAdmitter
from marketplace.webhook.ledger import IdempotencyLedger, ProcessedEvent
from protean.utils.globals import current_domain


@pytest.fixture()
def client(provider):
    app = FastAPI()
    app.include_router(webhook_router)
    app.include_router(order_router)
    return TestClient(app)


@pytest.fixture()
def product(make_tenant, make_product):
    return make_product(make_tenant(), stock=1)


def _post(client, body, signature):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post("/stripe/webhooks", content=body, headers=headers)


class TestWebhookEndpoint:
    def test_missing_signature_is_bad_request(self, client, encode):
        response = _post(client, encode({"id": "evt_1", "type": "refund.created"}), None)

        assert response.status_code == 400
        assert IdempotencyLedger().has_processed("evt_1") is False

    def test_forged_signature_is_bad_request(self, client, encode):
        response = _post(client, encode({"id": "evt_1", "type": "refund.created"}), "t=1,v1=forged")
        assert response.status_code == 400

    def test_event_without_id_is_bad_request(self, client, encode, signature):
        response = _post(client, encode({"type": "invoice.paid", "data": {"object": {}}}), signature)

        assert response.status_code == 400
        assert current_domain.repository_for(ProcessedEvent)._dao.query.all().items == []

    def test_unsupported_event(self, client, encode, signature):
        response = _post(client, encode({"id": "evt_2", "type": "invoice.paid", "data": {"object": {}}}), signature)

        assert response.status_code == 200
        assert response.json() == {"received": True, "status": "ignored"}

    def test_checkout_creates_order(self, client, checkout_event, line_item, product, encode, signature):
        response = _post(client, encode(checkout_event([line_item(product.id)])), signature)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "processed"
        order = current_domain.repository_for(Order).get(data["order_id"])
        assert order.total_cents == 1000

        refreshed = current_domain.repository_for(Product).get(product.id)
        assert refreshed.stock_quantity == 0
        assert refreshed.is_archived is True

    def test_redelivery_is_duplicate(self, client, checkout_event, line_item, product, encode, signature):
        body = encode(checkout_event([line_item(product.id)]))
        _post(client, body, signature)

        response = _post(client, body, signature)

        assert response.status_code == 200
        assert response.json()["status"] == "duplicate"

    def test_handling_runs_off_the_event_loop(self, client, checkout_event, line_item, product, encode, signature):
        handle = EventAdmitter.handle
        loops = []

        def recording_handle(self, raw_body, signature):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return handle(self, raw_body, signature)

        with patch.object(EventAdmitter, "handle", recording_handle):
            response = _post(client, encode(checkout_event([line_item(product.id)])), signature)

        assert response.status_code == 200
        assert loops == [None]

    def test_receipts_run_after_response(
        self, client, checkout_event, line_item, product, encode, signature, email_channel
    ):
        _post(client, encode(checkout_event([line_item(product.id)])), signature)

        assert sorted(e["to"] for e in email_channel.sent_emails) == ["checkout@example.com", "seller@example.com"]

    def test_handler_failure_acknowledged_outside_production(
        self, client, checkout_event, line_item, product, encode, signature
    ):
        response = _post(client, encode(checkout_event([line_item(product.id)], account=None)), signature)

        assert response.status_code == 200
        assert "error" in response.json()

    def test_handler_failure_is_server_error_in_production(
        self, client, checkout_event, line_item, product, encode, signature, monkeypatch
    ):
        monkeypatch.setenv("PROTEAN_ENV", "production")

        response = _post(client, encode(checkout_event([line_item(product.id)], account=None)), signature)

        assert response.status_code == 500
        assert response.json()["received"] is False
        assert IdempotencyLedger().has_processed("evt_1") is False
