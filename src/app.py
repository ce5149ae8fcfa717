"""Marketplace FastAPI application.

Receives Stripe Connect webhooks and exposes refund operations. Every request
runs inside the marketplace domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the Protean config overlay and the webhook failure policy.
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from marketplace.domain import marketplace  # noqa: E402

marketplace.init()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace Payments API",
    description="Stripe webhook processing, order materialization and refund reconciliation",
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for each request."""
    with marketplace.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import order_router, webhook_router  # noqa: E402

app.include_router(webhook_router)
app.include_router(order_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": marketplace.name})
