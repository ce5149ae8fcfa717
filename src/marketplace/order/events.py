"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A paid checkout session was materialized into an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    total_cents = Integer(required=True)
    currency = String(required=True)
    stripe_checkout_session_id = String(required=True)
    stripe_event_id = String()
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderInventoryAdjusted:
    """Stock was decremented for the order's line items."""

    __version__ = 1

    order_id = Identifier(required=True)
    stripe_event_id = String()
    adjusted_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderRefundStateChanged:
    """The refunded total or refund status of an order changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    refunded_total_cents = Integer(required=True)
    last_refund_at = DateTime()
    changed_at = DateTime(required=True)
