"""Order aggregate (CQRS): a durable record of one paid checkout session.

An order is created exactly once per checkout session. The unique session id
and unique Stripe event id are the store-level keys that make concurrent
deliveries of the same payment collapse into a single order.

Refund status:
    PAID → PARTIALLY_REFUNDED → REFUNDED
    PAID/PARTIALLY_REFUNDED/REFUNDED → PAID (when all refunds disappear)
    CANCELED is never changed by refund reconciliation
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from marketplace.domain import marketplace
from marketplace.order.events import OrderInventoryAdjusted, OrderPlaced, OrderRefundStateChanged


class OrderStatus(Enum):
    PAID = "paid"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    CANCELED = "canceled"


_REFUND_DRIVEN_STATUSES = {
    OrderStatus.PAID.value,
    OrderStatus.PARTIALLY_REFUNDED.value,
    OrderStatus.REFUNDED.value,
}


def derive_refund_status(current_status: str, refunded_total_cents: int, total_cents: int) -> str:
    """Return the status an order should carry for a given refunded total."""
    if current_status == OrderStatus.CANCELED.value:
        return current_status
    if refunded_total_cents > 0 and refunded_total_cents >= (total_cents or 0):
        return OrderStatus.REFUNDED.value
    if refunded_total_cents > 0:
        return OrderStatus.PARTIALLY_REFUNDED.value
    if current_status in _REFUND_DRIVEN_STATUSES:
        return OrderStatus.PAID.value
    return current_status


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Shipping snapshot taken from the first provider source with a street line."""

    name = String(max_length=255)
    line1 = String(max_length=255, required=True)
    line2 = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=2)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderLineItem:
    product_id = Identifier(required=True)
    name_snapshot = String(max_length=255, required=True)
    unit_amount = Integer(default=0)
    quantity = Integer(required=True, min_value=1)
    amount_subtotal = Integer(default=0)
    amount_tax = Integer()
    amount_total = Integer(default=0)
    refund_policy = String(max_length=20)
    returns_accepted_through = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(max_length=20, required=True)
    name = String(max_length=255, required=True)
    buyer_id = Identifier(required=True)
    buyer_email = String(max_length=255)
    tenant_id = Identifier(required=True)
    currency = String(max_length=3, required=True)
    total_cents = Integer(default=0, min_value=0)
    status = String(max_length=30, choices=OrderStatus, default=OrderStatus.PAID.value)
    stripe_checkout_session_id = String(max_length=255, required=True, unique=True)
    stripe_event_id = String(max_length=255, unique=True)
    stripe_account_id = String(max_length=255)
    stripe_payment_intent_id = String(max_length=255)
    stripe_charge_id = String(max_length=255)
    items = HasMany(OrderLineItem)
    shipping = ValueObject(ShippingAddress)
    returns_accepted_through = DateTime()
    inventory_adjusted_at = DateTime()
    refunded_total_cents = Integer(default=0)
    last_refund_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refunded_total_cannot_be_negative(self):
        if self.refunded_total_cents is not None and self.refunded_total_cents < 0:
            raise ValidationError({"refunded_total_cents": ["Refunded total cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        name,
        buyer_id,
        tenant_id,
        currency,
        total_cents,
        stripe_checkout_session_id,
        items,
        stripe_event_id=None,
        stripe_account_id=None,
        stripe_payment_intent_id=None,
        stripe_charge_id=None,
        buyer_email=None,
        shipping=None,
        returns_accepted_through=None,
    ):
        """Build a paid order from resolved checkout data.

        Args:
            items: OrderLineItem entities, at least one.
        """
        if not items:
            raise ValidationError({"items": ["An order needs at least one line item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            name=name,
            buyer_id=buyer_id,
            buyer_email=buyer_email,
            tenant_id=tenant_id,
            currency=currency,
            total_cents=total_cents,
            status=OrderStatus.PAID.value,
            stripe_checkout_session_id=stripe_checkout_session_id,
            stripe_event_id=stripe_event_id,
            stripe_account_id=stripe_account_id,
            stripe_payment_intent_id=stripe_payment_intent_id,
            stripe_charge_id=stripe_charge_id,
            shipping=shipping,
            returns_accepted_through=returns_accepted_through,
            refunded_total_cents=0,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(item)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                buyer_id=str(buyer_id),
                tenant_id=str(tenant_id),
                total_cents=total_cents,
                currency=currency,
                stripe_checkout_session_id=stripe_checkout_session_id,
                stripe_event_id=stripe_event_id,
                item_count=len(items),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def needs_inventory_adjustment(self) -> bool:
        return self.inventory_adjusted_at is None and bool(self.items)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def record_event_id(self, event_id) -> bool:
        """Backfill the Stripe event id on an order created without one."""
        if not event_id or self.stripe_event_id:
            return False
        self.stripe_event_id = event_id
        self.updated_at = datetime.now(UTC)
        return True

    def mark_inventory_adjusted(self, event_id=None) -> bool:
        """Set the inventory adjustment timestamp. It is set at most once."""
        if self.inventory_adjusted_at is not None:
            return False

        now = datetime.now(UTC)
        self.inventory_adjusted_at = now
        self.updated_at = now

        self.raise_(
            OrderInventoryAdjusted(
                order_id=str(self.id),
                stripe_event_id=event_id,
                adjusted_at=now,
            )
        )
        return True

    def apply_refund_state(self, refunded_total_cents: int, last_refund_at=None) -> bool:
        """Bring the refunded total and status in line with the counted refunds.

        Returns False without touching the order when nothing would change.
        """
        if refunded_total_cents < 0:
            raise ValidationError({"refunded_total_cents": ["Refunded total cannot be negative"]})

        previous_status = self.status
        next_status = derive_refund_status(previous_status, refunded_total_cents, self.total_cents)
        if (
            (self.refunded_total_cents or 0) == refunded_total_cents
            and previous_status == next_status
            and self.last_refund_at == last_refund_at
        ):
            return False

        now = datetime.now(UTC)
        self.refunded_total_cents = refunded_total_cents
        self.status = next_status
        self.last_refund_at = last_refund_at
        self.updated_at = now

        self.raise_(
            OrderRefundStateChanged(
                order_id=str(self.id),
                previous_status=previous_status,
                status=next_status,
                refunded_total_cents=refunded_total_cents,
                last_refund_at=last_refund_at,
                changed_at=now,
            )
        )
        return True
