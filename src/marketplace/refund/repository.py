"""Repository for the Refund aggregate."""

from marketplace.domain import marketplace
from marketplace.refund.refund import Refund


@marketplace.repository(part_of=Refund)
class RefundRepository:
    def find_by_stripe_refund_id(self, stripe_refund_id: str) -> Refund | None:
        return self._dao.query.filter(stripe_refund_id=stripe_refund_id).all().first

    def for_order(self, order_id: str, statuses) -> list[Refund]:
        """All refunds for an order whose status is one of ``statuses``."""
        refunds = self._dao.query.filter(order_id=str(order_id)).all().items
        return [refund for refund in refunds if refund.status in statuses]
