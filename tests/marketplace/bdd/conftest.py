"""Shared BDD fixtures and step definitions for webhook processing."""

import pytest
from marketplace.catalogue.product import Product
from marketplace.effects.dispatcher import SideEffectDispatcher
from marketplace.order.order import Order
from marketplace.webhook.admitter import EventAdmitter
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def admitter(provider, settings):
    return EventAdmitter(provider=provider, dispatcher=SideEffectDispatcher(settings=settings), settings=settings)


@pytest.fixture()
def responses():
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.parse('a seller shop connected to account "{account}"'), target_fixture="tenant")
def _(make_tenant, account):
    return make_tenant(stripe_account_id=account)


@given(parsers.re(r"a tracked product with (?P<stock>\d+) units? in stock"), target_fixture="product")
def _(make_product, tenant, stock):
    return make_product(tenant, stock=int(stock))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.re(r'the checkout for (?P<quantity>\d+) units? is delivered as event "(?P<event_id>[^"]+)"'))
def _(admitter, checkout_event, line_item, product, encode, signature, responses, quantity, event_id):
    event = checkout_event([line_item(product.id, quantity=int(quantity))], event_id=event_id)
    responses.append(admitter.handle(encode(event), signature))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('the webhook is acknowledged as "{status}"'))
def _(responses, status):
    assert responses[-1].status_code == 200
    assert responses[-1].body["status"] == status


@then(parsers.re(r"the product has (?P<stock>\d+) units? in stock"))
def _(product, stock):
    assert current_domain.repository_for(Product).get(product.id).stock_quantity == int(stock)


@then(parsers.parse("{count:d} order exists for the checkout session"))
def _(count):
    orders = current_domain.repository_for(Order)._dao.query.filter(stripe_checkout_session_id="cs_1").all().items
    assert len(orders) == count
