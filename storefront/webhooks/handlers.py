"""Webhook HTTP handler: FastAPI route for inbound Stripe events.

The handler:
1. Reads the raw body (needed for signature verification)
2. Verifies the Stripe-Signature header
3. Dispatches by event type (only completed checkouts act)
4. Deduplicates by checkout session, applies stock changes
5. Schedules the order mail after the response
6. Returns 200 so Stripe does not redeliver

Security contract:
- No session check here; the signature is the only authentication
- 400 only for signature/payload failures, with no internals in the body
- Every call gets one audit log line
"""

from __future__ import annotations

import logging
import time
from collections import Counter

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from storefront.errors import IntegrationFailure, SignatureFailure
from storefront.security.auth import require_admin
from storefront.webhooks.verification import SIGNATURE_HEADER, construct_event

logger = logging.getLogger(__name__)


class WebhookAudit:
    """Per-status webhook receive counters."""

    def __init__(self) -> None:
        self.counts: Counter[str] = Counter()

    def log(self, event_type: str, event_id: str, status: str) -> None:
        self.counts[status] += 1
        logger.info(
            "WEBHOOK_AUDIT event=%s id=%s status=%s count=%d",
            event_type,
            event_id,
            status,
            self.counts[status],
        )


def register_webhook_routes(app: FastAPI) -> None:
    """Register the Stripe webhook endpoint and its status view."""

    @app.post("/webhook")
    async def stripe_webhook(request: Request, background_tasks: BackgroundTasks):
        """Receive Stripe webhooks (signature-verified)."""
        start = time.time()
        audit: WebhookAudit = request.app.state.webhook_audit
        settings = request.app.state.settings
        fulfillment = request.app.state.fulfillment

        body = await request.body()
        try:
            event = construct_event(
                body,
                request.headers.get(SIGNATURE_HEADER),
                settings.stripe_webhook_secret,
                tolerance=settings.webhook_tolerance_seconds,
            )
        except SignatureFailure as e:
            audit.log("unknown", "unknown", "signature_failed")
            return PlainTextResponse(e.message, status_code=400)

        try:
            result = await run_in_threadpool(fulfillment.handle_event, event)
        except Exception as e:
            logger.exception("Failed to fulfill webhook event %s", event.get("id"))
            audit.log(str(event.get("type")), str(event.get("id")), "fulfillment_failed")
            raise IntegrationFailure("Webhook processing failed") from e

        audit.log(result.event_type, result.event_id, result.status)

        if result.notification is not None:
            background_tasks.add_task(fulfillment.notify, result.notification)

        logger.debug("Webhook processed in %.1fms: %s", (time.time() - start) * 1000, result.event_type)

        payload = {"received": True}
        if result.status == "duplicate":
            payload["duplicate"] = True
        return JSONResponse(payload, status_code=200)

    @app.get("/webhook/status", dependencies=[Depends(require_admin)])
    async def webhook_status(request: Request):
        """Webhook receive counts by status (admin only)."""
        return {"counts": dict(request.app.state.webhook_audit.counts)}

    logger.info("Webhook routes registered: /webhook")
