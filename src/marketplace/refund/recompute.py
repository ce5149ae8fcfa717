"""Operator-triggered refund recompute: command and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier

from marketplace.config import Settings
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.refund.reconciliation import RefundReconciler


@marketplace.command(part_of="Order")
class RecomputeRefundState:
    """Rebuild an order's refunded total and status from its refund records."""

    order_id = Identifier(required=True)
    include_pending = Boolean()


@marketplace.command_handler(part_of=Order)
class RefundStateHandler:
    @handle(RecomputeRefundState)
    def recompute_refund_state(self, command):
        reconciler = RefundReconciler(include_pending=Settings.from_env().refund_include_pending)
        state = reconciler.recompute(str(command.order_id), include_pending=command.include_pending)
        if state is None:
            raise ObjectNotFoundError(f"Order {command.order_id} not found")
        return state
