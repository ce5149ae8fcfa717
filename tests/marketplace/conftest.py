import json

import pytest
from marketplace.account.user import User
from marketplace.catalogue.product import Product
from marketplace.config import Settings
from marketplace.effects import get_analytics_channel, get_email_channel, reset_channels
from marketplace.gateway import reset_provider, set_provider
from marketplace.gateway.fake_adapter import TEST_SIGNATURE, FakePaymentProvider
from marketplace.tenant.tenant import Tenant
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    reset_provider()
    reset_channels()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def provider():
    fake = FakePaymentProvider()
    set_provider(fake)
    return fake


@pytest.fixture()
def email_channel():
    return get_email_channel()


@pytest.fixture()
def analytics_channel():
    return get_analytics_channel()


@pytest.fixture()
def settings():
    return Settings(environment="test")


@pytest.fixture()
def production_settings():
    return Settings(environment="production")


@pytest.fixture()
def signature():
    return TEST_SIGNATURE


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_user():
    def _make(email="buyer@example.com", username="buyer", first_name="Bea"):
        user = User.register(email=email, username=username, first_name=first_name)
        current_domain.repository_for(User).add(user)
        return user

    return _make


@pytest.fixture()
def make_tenant():
    counter = {"n": 0}

    def _make(stripe_account_id="acct_1", **overrides):
        counter["n"] += 1
        fields = {
            "name": "Hobby Shop",
            "slug": f"hobby-shop-{counter['n']}",
            "stripe_account_id": stripe_account_id,
            "notification_email": "seller@example.com",
        }
        fields.update(overrides)
        tenant = Tenant.register(**fields)
        current_domain.repository_for(Tenant).add(tenant)
        return tenant

    return _make


@pytest.fixture()
def make_product():
    def _make(tenant, product_id=None, stock=5, track_inventory=True, refund_policy="30 day", name="Model Kit"):
        fields = {}
        if product_id is not None:
            fields["id"] = product_id
        product = Product(
            tenant_id=str(tenant.id),
            name=name,
            price_cents=1000,
            refund_policy=refund_policy,
            track_inventory=track_inventory,
            stock_quantity=stock,
            is_archived=False,
            **fields,
        )
        current_domain.repository_for(Product).add(product)
        return product

    return _make


# ---------------------------------------------------------------------------
# Provider payloads
# ---------------------------------------------------------------------------
def _line_item(product_id, quantity=1, unit_amount=1000, name="Model Kit", amount_total=None):
    return {
        "id": f"li_{product_id}",
        "description": name,
        "quantity": quantity,
        "amount_subtotal": unit_amount * quantity,
        "amount_tax": 0,
        "amount_total": unit_amount * quantity if amount_total is None else amount_total,
        "price": {
            "unit_amount": unit_amount,
            "product": {"id": f"prod_stripe_{product_id}", "name": name, "metadata": {"id": product_id}},
        },
    }


@pytest.fixture()
def line_item():
    return _line_item


@pytest.fixture()
def checkout_event(provider):
    """Register a paid checkout with the fake provider and return its completed event."""

    def _make(
        lines,
        event_id="evt_1",
        session_id="cs_1",
        account="acct_1",
        buyer_id="user-1",
        tenant_id=None,
        payment_intent_id="pi_1",
        charge_id="ch_1",
        shipping=None,
        amount_received=None,
    ):
        metadata = {"userId": buyer_id} if buyer_id else {}
        if tenant_id:
            metadata["tenantId"] = tenant_id

        session = {
            "id": session_id,
            "object": "checkout.session",
            "currency": "usd",
            "metadata": metadata,
            "payment_intent": payment_intent_id,
            "customer_details": {"email": "checkout@example.com", "name": "Bea Buyer"},
        }
        provider.add_checkout_session({**session, "line_items": {"data": lines}, **(shipping or {})})
        if payment_intent_id:
            provider.add_payment_intent(
                {
                    "id": payment_intent_id,
                    "amount_received": (
                        sum(line["amount_total"] for line in lines) if amount_received is None else amount_received
                    ),
                    "latest_charge": charge_id,
                }
            )
        if charge_id:
            provider.add_charge(
                {
                    "id": charge_id,
                    "payment_intent": payment_intent_id,
                    "payment_method_details": {"card": {"brand": "visa", "last4": "4242"}},
                    "calculated_statement_descriptor": "HOBBY SHOP",
                }
            )

        return {
            "id": event_id,
            "type": "checkout.session.completed",
            "account": account,
            "data": {"object": session},
        }

    return _make


@pytest.fixture()
def encode():
    def _encode(event):
        return json.dumps(event).encode()

    return _encode
