"""Pydantic request/response schemas for the marketplace API.

These are external contracts, separate from the internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel


class WebhookAckResponse(BaseModel):
    received: bool
    status: str
    order_id: str | None = None
    tenant_id: str | None = None
    error: str | None = None
    message: str | None = None


class RecomputeRefundsRequest(BaseModel):
    include_pending: bool | None = None


class RefundStateResponse(BaseModel):
    order_id: str
    refunded_total_cents: int
    status: str
    last_refund_at: datetime | None = None
    changed: bool
