"""Tests for checkout metadata and line-item normalization."""

from datetime import UTC, datetime, timedelta

import pytest
from marketplace.errors import UnresolvableProductId
from marketplace.webhook.line_items import (
    build_line_item_drafts,
    earliest_cutoff,
    format_cents,
    generate_order_number,
    line_total_cents,
    order_display_name,
    order_total_cents,
    parse_checkout_metadata,
    require_product_id,
    returns_cutoff,
    to_quantity_map,
)


def _line(product_id="p1", quantity=1, unit_amount=1000, amount_total=None, name="Model Kit"):
    line = {
        "id": "li_1",
        "description": "Described Kit",
        "quantity": quantity,
        "price": {"unit_amount": unit_amount, "product": {"name": name, "metadata": {"id": product_id}}},
    }
    if amount_total is not None:
        line["amount_total"] = amount_total
    return line


class TestCheckoutMetadata:
    def test_user_id_is_buyer(self):
        assert parse_checkout_metadata({"userId": "u1"}).buyer_id == "u1"

    def test_buyer_id_alias(self):
        assert parse_checkout_metadata({"buyerId": "u2"}).buyer_id == "u2"

    def test_product_ids_are_split_and_deduplicated(self):
        metadata = parse_checkout_metadata({"productIds": "p1, p2,,p1"})
        assert metadata.product_ids == ("p1", "p2")

    def test_missing_metadata(self):
        metadata = parse_checkout_metadata(None)
        assert metadata.buyer_id is None
        assert metadata.product_ids == ()

    def test_tenant_fields(self):
        metadata = parse_checkout_metadata(
            {"tenantId": "t1", "tenantSlug": "hobby-shop", "sellerStripeAccountId": "acct_1"}
        )
        assert metadata.tenant_id == "t1"
        assert metadata.tenant_slug == "hobby-shop"
        assert metadata.seller_stripe_account_id == "acct_1"


class TestProductIdentity:
    def test_product_id_from_metadata(self):
        assert require_product_id(_line("p9")) == "p9"

    def test_unexpanded_product_is_unresolvable(self):
        line = {"id": "li_1", "price": {"product": "prod_123"}}
        with pytest.raises(UnresolvableProductId):
            require_product_id(line)

    def test_missing_metadata_id_is_unresolvable(self):
        line = {"id": "li_1", "price": {"product": {"metadata": {}}}}
        with pytest.raises(UnresolvableProductId) as exc:
            require_product_id(line)
        assert "product" in exc.value.messages


class TestTotals:
    def test_line_total_prefers_amount_total(self):
        assert line_total_cents(_line(quantity=2, amount_total=1800)) == 1800

    def test_line_total_falls_back_to_unit_times_quantity(self):
        assert line_total_cents(_line(quantity=3, unit_amount=500)) == 1500

    def test_order_total_sums_lines(self):
        lines = [_line(amount_total=1000), _line(product_id="p2", amount_total=250)]
        assert order_total_cents(lines) == 1250

    def test_order_total_falls_back_to_amount_received(self):
        lines = [_line(unit_amount=0, amount_total=0)]
        assert order_total_cents(lines, {"amount_received": 4200}) == 4200

    def test_order_total_zero_without_payment_intent(self):
        assert order_total_cents([_line(unit_amount=0, amount_total=0)]) == 0


class TestReturnWindows:
    purchased_at = datetime(2026, 3, 1, tzinfo=UTC)

    def test_thirty_day_policy(self):
        assert returns_cutoff("30 day", self.purchased_at) == self.purchased_at + timedelta(days=30)

    def test_no_refunds_policy_closes_immediately(self):
        assert returns_cutoff("no refunds", self.purchased_at) == self.purchased_at

    def test_unknown_policy_has_no_cutoff(self):
        assert returns_cutoff(None, self.purchased_at) is None

    def test_order_cutoff_is_earliest_line(self):
        drafts = build_line_item_drafts(
            [_line("p1"), _line("p2")],
            {"p1": "30 day", "p2": "7 day"},
            self.purchased_at,
        )
        assert earliest_cutoff(drafts) == self.purchased_at + timedelta(days=7)


class TestLineItemDrafts:
    def test_name_prefers_product_name(self):
        [draft] = build_line_item_drafts([_line()], {}, datetime.now(UTC))
        assert draft.name == "Model Kit"

    def test_name_falls_back_to_description(self):
        [draft] = build_line_item_drafts([_line(name=None)], {}, datetime.now(UTC))
        assert draft.name == "Described Kit"

    def test_quantity_defaults_to_one(self):
        line = _line()
        line["quantity"] = None
        [draft] = build_line_item_drafts([line], {}, datetime.now(UTC))
        assert draft.quantity == 1

    def test_any_unresolvable_line_fails_the_batch(self):
        bad = {"id": "li_2", "price": {"product": {"metadata": {}}}}
        with pytest.raises(UnresolvableProductId):
            build_line_item_drafts([_line(), bad], {}, datetime.now(UTC))

    def test_quantity_map_sums_repeated_products(self):
        drafts = build_line_item_drafts(
            [_line("p1", quantity=2), _line("p1", quantity=1), _line("p2")], {}, datetime.now(UTC)
        )
        assert to_quantity_map(drafts) == {"p1": 3, "p2": 1}


class TestPresentation:
    def test_single_item_name(self):
        assert order_display_name(["Model Kit"]) == "Model Kit"

    def test_multi_item_name(self):
        assert order_display_name(["Model Kit", "Paint", "Glue"]) == "Model Kit (+2 more)"

    def test_order_number_format(self):
        number = generate_order_number()
        assert number.startswith("AH-")
        assert len(number) == 11

    def test_format_cents(self):
        assert format_cents(123456, "usd") == "$1,234.56"
        assert format_cents(500, "JPY") == "5.00 JPY"
