"""Event admitter: the single entry point for a Stripe webhook delivery.

Authenticate, filter, deduplicate, route, then record the event as processed.
An event is only marked after its handler succeeded, or after a failure that
redelivery cannot fix (unknown type, or any failure outside production).
"""

from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from marketplace.config import Settings
from marketplace.effects.dispatcher import SideEffectDispatcher
from marketplace.effects.receipts import checkout_expired_task, checkout_failed_task
from marketplace.errors import MalformedEvent
from marketplace.gateway import get_provider
from marketplace.gateway.port import PaymentProvider
from marketplace.refund.reconciliation import RefundReconciler, refund_references
from marketplace.tenant.account_sync import SyncTenantAccount
from marketplace.utils.logging import add_context, clear_context
from marketplace.webhook.ledger import IdempotencyLedger
from marketplace.webhook.materializer import MaterializationOutcome, OrderMaterializer

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"
PAYMENT_FAILED = "payment_intent.payment_failed"
ACCOUNT_UPDATED = "account.updated"
REFUND_EVENTS = frozenset(
    {
        "charge.refunded",
        "charge.refund.updated",
        "refund.created",
        "refund.updated",
        "refund.failed",
    }
)
PERMITTED_EVENTS = frozenset({CHECKOUT_COMPLETED, CHECKOUT_EXPIRED, PAYMENT_FAILED, ACCOUNT_UPDATED}) | REFUND_EVENTS


class AdmissionStatus(Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    status: AdmissionStatus
    event_id: str | None = None
    detail: dict = field(default_factory=dict)

    @property
    def body(self) -> dict:
        return {"received": self.status_code < 500, "status": self.status.value, **self.detail}


class EventAdmitter:
    def __init__(
        self,
        provider: PaymentProvider | None = None,
        ledger: IdempotencyLedger | None = None,
        materializer: OrderMaterializer | None = None,
        reconciler: RefundReconciler | None = None,
        dispatcher: SideEffectDispatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.provider = provider or get_provider()
        self.ledger = ledger or IdempotencyLedger()
        self.dispatcher = dispatcher or SideEffectDispatcher(settings=self.settings)
        self.materializer = materializer or OrderMaterializer(
            provider=self.provider, dispatcher=self.dispatcher, settings=self.settings
        )
        self.reconciler = reconciler or RefundReconciler(include_pending=self.settings.refund_include_pending)

    def handle(self, raw_body: bytes, signature: str | None) -> WebhookResponse:
        """Process one delivery.

        Raises:
            InvalidSignature: the delivery could not be authenticated. Nothing
                has been read or written.
            MalformedEvent: the event carries no id or type, so it can be
                neither deduplicated nor routed. Nothing has been written.
        """
        event = self.provider.construct_event(raw_body, signature)
        event_id = event.get("id")
        event_type = event.get("type")
        if not event_id or not event_type:
            logger.warning("Rejecting event without id or type", stripe_event_id=event_id, stripe_event_type=event_type)
            raise MalformedEvent("Webhook event is missing its id or type")

        add_context(stripe_event_id=event_id, stripe_event_type=event_type)
        try:
            return self._admit(event, event_id, event_type)
        finally:
            clear_context()

    def _admit(self, event: dict, event_id: str, event_type: str) -> WebhookResponse:
        if event_type not in PERMITTED_EVENTS:
            logger.info("Ignoring unsupported event type")
            self.ledger.mark_processed(event_id, event_type)
            return WebhookResponse(200, AdmissionStatus.IGNORED, event_id)

        if self._already_processed(event_id):
            logger.info("Duplicate event")
            return WebhookResponse(200, AdmissionStatus.DUPLICATE, event_id)

        try:
            status, detail = self._route(event, event_type)
        except Exception as exc:
            return self._fail(event_id, event_type, exc)

        self.ledger.mark_processed(event_id, event_type)
        logger.info("Event processed", status=status.value, **detail)
        return WebhookResponse(200, status, event_id, detail)

    def _already_processed(self, event_id: str) -> bool:
        try:
            return self.ledger.has_processed(event_id)
        except Exception:
            logger.warning("Processed-event check failed, continuing", exc_info=True)
            return False

    def _route(self, event: dict, event_type: str) -> tuple[AdmissionStatus, dict]:
        """Dispatch by event type. A session that already has an order reports as a duplicate."""
        if event_type == CHECKOUT_COMPLETED:
            result = self.materializer.materialize(event)
            status = AdmissionStatus.PROCESSED
            if result.outcome is not MaterializationOutcome.CREATED:
                status = AdmissionStatus.DUPLICATE
            return status, {"order_id": result.order_id}

        if event_type == CHECKOUT_EXPIRED:
            self.dispatcher.dispatch(checkout_expired_task(event))
            return AdmissionStatus.PROCESSED, {}

        if event_type == PAYMENT_FAILED:
            self.dispatcher.dispatch(checkout_failed_task(event))
            return AdmissionStatus.PROCESSED, {}

        if event_type == ACCOUNT_UPDATED:
            account = event["data"]["object"]
            tenant_id = current_domain.process(
                SyncTenantAccount(
                    stripe_account_id=account["id"],
                    details_submitted=bool(account.get("details_submitted")),
                ),
                asynchronous=False,
            )
            return AdmissionStatus.PROCESSED, ({"tenant_id": tenant_id} if tenant_id else {})

        state = self.reconciler.reconcile_all(refund_references(event))
        return AdmissionStatus.PROCESSED, ({"order_id": state.order_id} if state else {})

    def _fail(self, event_id: str, event_type: str, exc: Exception) -> WebhookResponse:
        if self.settings.is_production_like:
            logger.exception("Webhook handler failed", error=str(exc))
            return WebhookResponse(500, AdmissionStatus.FAILED, event_id, {"message": f"Webhook handler failed: {exc}"})

        logger.warning("Webhook handler failed, acknowledging outside production", error=str(exc), exc_info=True)
        self.ledger.mark_processed(event_id, event_type)
        return WebhookResponse(200, AdmissionStatus.PROCESSED, event_id, {"error": str(exc)})
