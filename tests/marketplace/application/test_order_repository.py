import pytest
from marketplace.errors import ConflictError
from marketplace.order.order import Order, OrderLineItem
from protean import current_domain


def _order(session_id="cs_1", event_id="evt_1", **overrides):
    fields = {
        "order_number": "AH-REPO0001",
        "name": "Model Kit",
        "buyer_id": "user-1",
        "tenant_id": "tenant-1",
        "currency": "USD",
        "total_cents": 1000,
        "stripe_checkout_session_id": session_id,
        "stripe_event_id": event_id,
        "stripe_payment_intent_id": "pi_1",
        "stripe_charge_id": "ch_1",
        "items": [OrderLineItem(product_id="p1", name_snapshot="Model Kit", unit_amount=1000, quantity=1)],
    }
    fields.update(overrides)
    return Order.place(**fields)


@pytest.fixture()
def orders():
    return current_domain.repository_for(Order)


class TestLookups:
    def test_find_by_session(self, orders):
        order = orders.create_unique(_order())
        assert orders.find_by_session_or_event("cs_1", None).id == order.id

    def test_find_by_event_when_session_unknown(self, orders):
        order = orders.create_unique(_order())
        assert orders.find_by_session_or_event("cs_other", "evt_1").id == order.id

    def test_find_nothing(self, orders):
        assert orders.find_by_session_or_event("cs_1", "evt_1") is None
        assert orders.find_by_session_or_event(None, None) is None

    def test_find_by_payment_references(self, orders):
        order = orders.create_unique(_order())
        assert orders.find_by_payment_intent("pi_1").id == order.id
        assert orders.find_by_charge("ch_1").id == order.id
        assert orders.find_by_charge("ch_unknown") is None


class TestCreateUnique:
    def test_same_session_conflicts(self, orders):
        orders.create_unique(_order())

        with pytest.raises(ConflictError) as exc:
            orders.create_unique(_order(event_id="evt_2"))
        assert exc.value.field_name == "stripe_checkout_session_id"

    def test_same_event_conflicts(self, orders):
        orders.create_unique(_order())

        with pytest.raises(ConflictError) as exc:
            orders.create_unique(_order(session_id="cs_2"))
        assert exc.value.field_name == "stripe_event_id"

    def test_orders_without_event_id_do_not_collide(self, orders):
        orders.create_unique(_order(session_id="cs_1", event_id=None))
        orders.create_unique(_order(session_id="cs_2", event_id=None))

        assert len(orders._dao.query.all().items) == 2

    def test_line_items_are_persisted(self, orders):
        order = orders.create_unique(_order())
        assert len(orders.get(order.id).items) == 1
