"""FastAPI routes for the marketplace: Stripe webhooks and refund operations."""

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.api.schemas import RecomputeRefundsRequest, RefundStateResponse, WebhookAckResponse
from marketplace.config import Settings
from marketplace.effects.dispatcher import SideEffectDispatcher
from marketplace.errors import InvalidSignature, MalformedEvent
from marketplace.refund.recompute import RecomputeRefundState
from marketplace.webhook.admitter import EventAdmitter

# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/stripe", tags=["stripe"])


@webhook_router.post("/webhooks", response_model=WebhookAckResponse)
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: str | None = Header(default=None),
):
    """Receive a Stripe event. The raw body is needed for signature verification.

    Handling talks to Stripe and the store synchronously, so it runs in the
    threadpool rather than on the event loop.
    """
    raw_body = await request.body()

    settings = Settings.from_env()
    admitter = EventAdmitter(
        settings=settings,
        dispatcher=SideEffectDispatcher(settings=settings, scheduler=background_tasks.add_task),
    )
    try:
        result = await run_in_threadpool(admitter.handle, raw_body, stripe_signature)
    except (InvalidSignature, MalformedEvent) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return JSONResponse(status_code=result.status_code, content=result.body, background=background_tasks)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/{order_id}/refunds/recompute", response_model=RefundStateResponse)
async def recompute_refunds(order_id: str, body: RecomputeRefundsRequest | None = None) -> RefundStateResponse:
    """Rebuild an order's refund totals from its refund records."""
    command = RecomputeRefundState(
        order_id=order_id,
        include_pending=body.include_pending if body else None,
    )
    try:
        state = current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found") from exc

    return RefundStateResponse(
        order_id=state.order_id,
        refunded_total_cents=state.refunded_total_cents,
        status=state.status,
        last_refund_at=state.last_refund_at,
        changed=state.changed,
    )
