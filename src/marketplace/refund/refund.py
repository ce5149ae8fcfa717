"""Refund aggregate (CQRS): a local mirror of one provider refund.

Refund records are created by the refund-issuance flow. Webhooks only keep
their status in step with the provider and never create them.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


class RefundStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


# Provider refund statuses that have no direct local counterpart
_PROVIDER_STATUS_ALIASES = {
    "requires_action": RefundStatus.PENDING.value,
}


def local_status_for(provider_status: str | None) -> str | None:
    """Map a provider refund status onto a local one, or None if unknown."""
    if not provider_status:
        return None
    status = _PROVIDER_STATUS_ALIASES.get(provider_status, provider_status)
    if status not in {s.value for s in RefundStatus}:
        return None
    return status


@marketplace.aggregate
class Refund:
    stripe_refund_id = String(max_length=255, required=True, unique=True)
    order_id = Identifier()
    amount = Integer(required=True, min_value=0)
    status = String(max_length=20, choices=RefundStatus, default=RefundStatus.PENDING.value)
    reason = String(max_length=255)
    stripe_payment_intent_id = String(max_length=255)
    stripe_charge_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(
        cls,
        stripe_refund_id,
        amount,
        order_id=None,
        status=RefundStatus.PENDING.value,
        reason=None,
        stripe_payment_intent_id=None,
        stripe_charge_id=None,
    ):
        now = datetime.now(UTC)
        return cls(
            stripe_refund_id=stripe_refund_id,
            order_id=order_id,
            amount=amount,
            status=status,
            reason=reason,
            stripe_payment_intent_id=stripe_payment_intent_id,
            stripe_charge_id=stripe_charge_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def effective_at(self):
        return self.updated_at or self.created_at

    def mirror_status(self, provider_status: str | None) -> bool:
        """Adopt the provider's status. Returns True if the local status changed."""
        status = local_status_for(provider_status)
        if status is None or status == self.status:
            return False
        self.status = status
        self.updated_at = datetime.now(UTC)
        return True
