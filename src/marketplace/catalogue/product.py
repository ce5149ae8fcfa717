"""Product aggregate root: the stock-tracking view of a listed item."""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


class RefundPolicy(Enum):
    """Return windows a seller can offer on a product."""

    THIRTY_DAY = "30 day"
    FOURTEEN_DAY = "14 day"
    SEVEN_DAY = "7 day"
    ONE_DAY = "1 day"
    NO_REFUNDS = "no refunds"


REFUND_POLICY_DAYS = {
    RefundPolicy.THIRTY_DAY.value: 30,
    RefundPolicy.FOURTEEN_DAY.value: 14,
    RefundPolicy.SEVEN_DAY.value: 7,
    RefundPolicy.ONE_DAY.value: 1,
    RefundPolicy.NO_REFUNDS.value: 0,
}


@marketplace.aggregate
class Product:
    tenant_id: Identifier(required=True)
    name: String(max_length=255, required=True)
    price_cents: Integer(default=0, min_value=0)
    refund_policy: String(max_length=20, choices=RefundPolicy, default=RefundPolicy.THIRTY_DAY.value)
    track_inventory: Boolean(default=False)
    stock_quantity: Integer(default=0)
    is_archived: Boolean(default=False)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def tracked_stock_cannot_be_negative(self):
        if self.track_inventory and self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

    @classmethod
    def create(
        cls,
        tenant_id,
        name,
        price_cents=0,
        refund_policy=RefundPolicy.THIRTY_DAY.value,
        track_inventory=False,
        stock_quantity=0,
    ):
        now = datetime.now(UTC)
        return cls(
            tenant_id=tenant_id,
            name=name,
            price_cents=price_cents,
            refund_policy=refund_policy,
            track_inventory=track_inventory,
            stock_quantity=stock_quantity,
            is_archived=False,
            created_at=now,
            updated_at=now,
        )

    def deduct_stock(self, quantity: int) -> int:
        """Remove units from tracked stock and return what remains."""
        if not self.track_inventory:
            raise ValidationError({"track_inventory": ["Product does not track inventory"]})
        if quantity > (self.stock_quantity or 0):
            raise ValidationError(
                {"stock_quantity": [f"Insufficient stock: requested {quantity}, available {self.stock_quantity}"]}
            )
        self.stock_quantity = (self.stock_quantity or 0) - quantity
        self.updated_at = datetime.now(UTC)
        return self.stock_quantity

    def archive(self) -> bool:
        """Archive the product. Archiving is one-way and repeat calls are no-ops."""
        if self.is_archived:
            return False
        self.is_archived = True
        self.updated_at = datetime.now(UTC)
        return True
