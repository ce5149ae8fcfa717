"""Repository for the Order aggregate."""

from protean.exceptions import ValidationError

from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import Order

UNIQUE_KEYS = ("stripe_checkout_session_id", "stripe_event_id")


@marketplace.repository(part_of=Order)
class OrderRepository:
    """Order lookups by provider reference, plus a conflict-aware insert."""

    def find_by_session_or_event(self, session_id: str | None, event_id: str | None) -> Order | None:
        """Find an order created for this checkout session or by this event."""
        if session_id:
            order = self._dao.query.filter(stripe_checkout_session_id=session_id).all().first
            if order is not None:
                return order
        if event_id:
            return self._dao.query.filter(stripe_event_id=event_id).all().first
        return None

    def find_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        return self._dao.query.filter(stripe_payment_intent_id=payment_intent_id).all().first

    def find_by_charge(self, charge_id: str) -> Order | None:
        return self._dao.query.filter(stripe_charge_id=charge_id).all().first

    def create_unique(self, order: Order) -> Order:
        """Insert a new order, raising ConflictError if a unique key is taken."""
        for key in UNIQUE_KEYS:
            value = getattr(order, key)
            if value and self._dao.query.filter(**{key: value}).all().first is not None:
                raise ConflictError(key, value)

        try:
            return self.add(order)
        except ValidationError as exc:
            for key in UNIQUE_KEYS:
                if key in (exc.messages or {}):
                    raise ConflictError(key, getattr(order, key)) from exc
            raise
