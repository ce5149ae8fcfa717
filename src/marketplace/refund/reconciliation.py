"""Refund reconciliation: keep order refund totals in step with provider refunds.

The refunded total is never adjusted incrementally. Every refund event triggers
a full recompute over the order's local refund records, so replays and
out-of-order deliveries converge on the same state.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.order.order import Order
from marketplace.refund.refund import Refund, RefundStatus
from marketplace.webhook.resolvers import reference_id

logger = structlog.get_logger(__name__)

CHARGE_EVENT_TYPES = frozenset({"charge.refunded"})


@dataclass(frozen=True)
class RefundReference:
    """What a refund webhook tells us about one refund."""

    refund_id: str | None = None
    status: str | None = None
    payment_intent_id: str | None = None
    charge_id: str | None = None

    @classmethod
    def from_refund_object(cls, refund: dict) -> "RefundReference":
        return cls(
            refund_id=refund.get("id"),
            status=refund.get("status"),
            payment_intent_id=reference_id(refund.get("payment_intent")),
            charge_id=reference_id(refund.get("charge")),
        )


def refund_references(event: dict) -> list[RefundReference]:
    """Extract refund references from a refund-family webhook event.

    ``charge.refunded`` carries a Charge with its refunds embedded; every other
    refund event carries a single Refund object.
    """
    obj = (event.get("data") or {}).get("object") or {}

    if event.get("type") not in CHARGE_EVENT_TYPES:
        return [RefundReference.from_refund_object(obj)]

    charge_id = obj.get("id")
    payment_intent_id = reference_id(obj.get("payment_intent"))
    embedded = (obj.get("refunds") or {}).get("data") or []
    if not embedded:
        return [RefundReference(payment_intent_id=payment_intent_id, charge_id=charge_id)]

    references = []
    for refund in embedded:
        reference = RefundReference.from_refund_object(refund)
        references.append(
            RefundReference(
                refund_id=reference.refund_id,
                status=reference.status,
                payment_intent_id=reference.payment_intent_id or payment_intent_id,
                charge_id=reference.charge_id or charge_id,
            )
        )
    return references


@dataclass(frozen=True)
class RefundState:
    """Result of a recompute."""

    order_id: str
    refunded_total_cents: int
    status: str
    last_refund_at: datetime | None
    changed: bool


class RefundReconciler:
    def __init__(self, include_pending: bool = False) -> None:
        self.include_pending = include_pending

    def counted_statuses(self, include_pending: bool | None = None) -> set[str]:
        include_pending = self.include_pending if include_pending is None else include_pending
        statuses = {RefundStatus.SUCCEEDED.value}
        if include_pending:
            statuses.add(RefundStatus.PENDING.value)
        return statuses

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def reconcile(self, reference: RefundReference) -> RefundState | None:
        """Mirror one refund's status, then recompute its order."""
        return self.reconcile_all([reference])

    def reconcile_all(self, references: list[RefundReference]) -> RefundState | None:
        """Mirror every referenced refund, then recompute the order they belong to.

        Returns None when no order can be resolved; that is logged and final.
        """
        for reference in references:
            self.sync_local_status(reference)

        order_id = next((oid for oid in map(self.resolve_order, references) if oid), None)
        if order_id is None:
            logger.warning(
                "Refund event could not be matched to an order",
                refund_ids=[r.refund_id for r in references],
                charge_ids=[r.charge_id for r in references],
            )
            return None

        return self.recompute(order_id)

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def resolve_order(self, reference: RefundReference) -> str | None:
        """Local refund record first, then payment intent, then charge."""
        if reference.refund_id:
            refund = current_domain.repository_for(Refund).find_by_stripe_refund_id(reference.refund_id)
            if refund is not None and refund.order_id:
                return str(refund.order_id)

        orders = current_domain.repository_for(Order)
        if reference.payment_intent_id:
            order = orders.find_by_payment_intent(reference.payment_intent_id)
            if order is not None:
                return str(order.id)
        if reference.charge_id:
            order = orders.find_by_charge(reference.charge_id)
            if order is not None:
                return str(order.id)
        return None

    def sync_local_status(self, reference: RefundReference) -> bool:
        """Copy the provider status onto the local refund record, if there is one."""
        if not reference.refund_id or not reference.status:
            return False

        repo = current_domain.repository_for(Refund)
        refund = repo.find_by_stripe_refund_id(reference.refund_id)
        if refund is None:
            logger.debug("No local refund record to sync", stripe_refund_id=reference.refund_id)
            return False

        previous = refund.status
        if not refund.mirror_status(reference.status):
            return False
        repo.add(refund)
        logger.info(
            "Refund status synced",
            stripe_refund_id=reference.refund_id,
            previous_status=previous,
            status=refund.status,
        )
        return True

    def recompute(self, order_id: str, include_pending: bool | None = None) -> RefundState | None:
        """Recompute the order's refunded total and status from its refund records."""
        orders = current_domain.repository_for(Order)
        try:
            order = orders.get(order_id)
        except ObjectNotFoundError:
            logger.warning("Refund recompute for unknown order", order_id=order_id)
            return None

        refunds = current_domain.repository_for(Refund).for_order(order_id, self.counted_statuses(include_pending))
        refunded_total = sum(refund.amount or 0 for refund in refunds)
        timestamps = [refund.effective_at for refund in refunds if refund.effective_at is not None]
        last_refund_at = max(timestamps) if timestamps else None

        changed = order.apply_refund_state(refunded_total, last_refund_at)
        if changed:
            orders.add(order)
            logger.info(
                "Order refund state updated",
                order_id=order_id,
                refunded_total_cents=refunded_total,
                status=order.status,
            )

        return RefundState(
            order_id=str(order.id),
            refunded_total_cents=order.refunded_total_cents,
            status=order.status,
            last_refund_at=order.last_refund_at,
            changed=changed,
        )
