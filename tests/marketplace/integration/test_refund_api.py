"""Integration tests for the operator refund recompute endpoint."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace.api import order_router
from marketplace.order.order import Order, OrderLineItem
from marketplace.refund.refund import Refund
from protean.utils.globals import current_domain


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    return TestClient(app)


@pytest.fixture()
def order():
    order = Order.place(
        order_number="AH-APIREF01",
        name="Model Kit",
        buyer_id="user-1",
        tenant_id="tenant-1",
        currency="USD",
        total_cents=2000,
        stripe_checkout_session_id="cs_api",
        items=[OrderLineItem(product_id="p1", name_snapshot="Model Kit", unit_amount=2000, quantity=1)],
    )
    current_domain.repository_for(Order).add(order)
    return order


def _add_refund(order, stripe_refund_id, amount, status):
    current_domain.repository_for(Refund).add(
        Refund.record(stripe_refund_id=stripe_refund_id, amount=amount, order_id=str(order.id), status=status)
    )


class TestRecomputeEndpoint:
    def test_recompute(self, client, order):
        _add_refund(order, "re_1", 500, "succeeded")

        response = client.post(f"/orders/{order.id}/refunds/recompute")

        assert response.status_code == 200
        data = response.json()
        assert data["order_id"] == str(order.id)
        assert data["refunded_total_cents"] == 500
        assert data["status"] == "partially_refunded"
        assert data["changed"] is True

    def test_include_pending(self, client, order):
        _add_refund(order, "re_1", 500, "succeeded")
        _add_refund(order, "re_2", 1500, "pending")

        response = client.post(f"/orders/{order.id}/refunds/recompute", json={"include_pending": True})

        assert response.json()["refunded_total_cents"] == 2000
        assert response.json()["status"] == "refunded"

    def test_nothing_to_change(self, client, order):
        response = client.post(f"/orders/{order.id}/refunds/recompute")

        assert response.status_code == 200
        assert response.json()["changed"] is False

    def test_unknown_order(self, client):
        response = client.post("/orders/missing-order/refunds/recompute")
        assert response.status_code == 404
