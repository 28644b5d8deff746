"""Storefront HTTP routes: admin login, inventory, checkout, test mail.

Webhook routes live in storefront.webhooks.handlers.
"""

from __future__ import annotations

import logging
import time

from fastapi import Depends, FastAPI, Request, Response
from slowapi import Limiter

from storefront.channels.protocol import NotificationMessage, deliver
from storefront.config import Settings
from storefront.errors import AuthFailure, IntegrationFailure
from storefront.schemas import CheckoutInput, InventoryUpdateInput, LoginInput
from storefront.security.auth import (
    check_credentials,
    clear_session_cookie,
    get_session_token,
    require_admin,
    set_session_cookie,
)
from storefront.sessions.models import AdminSession

logger = logging.getLogger(__name__)


def register_api_routes(app: FastAPI, limiter: Limiter, settings: Settings) -> None:
    """Register all non-webhook routes on the app."""

    @app.get("/health")
    def health():
        return {"ok": True, "time": int(time.time() * 1000)}

    # ── Session gate ──────────────────────────────────────────────────────

    @app.post("/login")
    @limiter.limit(settings.login_rate_limit)
    def login(request: Request, response: Response, body: LoginInput):
        """Check admin credentials and issue a session cookie."""
        if not check_credentials(settings, body.username, body.password):
            logger.warning("Failed admin login for %r", body.username)
            raise AuthFailure("Invalid password")
        session = request.app.state.sessions.create(body.username)
        set_session_cookie(response, session, settings)
        return {"success": True}

    @app.post("/logout")
    def logout(request: Request, response: Response):
        request.app.state.sessions.close(get_session_token(request))
        clear_session_cookie(response, settings)
        return {"success": True}

    # ── Inventory ─────────────────────────────────────────────────────────

    @app.get("/public-inventory")
    def public_inventory(request: Request):
        return request.app.state.inventory.get()

    @app.get("/inventory")
    def get_inventory(request: Request, session: AdminSession = Depends(require_admin)):
        return request.app.state.inventory.get()

    @app.post("/inventory")
    def update_inventory(
        request: Request,
        body: InventoryUpdateInput,
        session: AdminSession = Depends(require_admin),
    ):
        request.app.state.inventory.set(body.color, body.qty)
        logger.info("Inventory updated by %s: %s=%d", session.username, body.color, body.qty)
        return {"success": True}

    # ── Checkout ──────────────────────────────────────────────────────────

    @app.post("/create-checkout-session")
    def create_checkout_session(request: Request, body: CheckoutInput):
        url = request.app.state.checkout.create_checkout(body.items, body.shipping_state)
        return {"url": url}

    # ── Mail check ────────────────────────────────────────────────────────

    @app.post("/test-email")
    def test_email(request: Request, session: AdminSession = Depends(require_admin)):
        """Send a test message to the operator address through the order channel."""
        message = NotificationMessage(
            title="Test Email",
            body=f"Test email from the {settings.store_name} backend (requested by {session.username}).\n",
            recipients=[settings.notify_email],
            event_type="test_email",
        )
        result = deliver(request.app.state.mail_channel, message)
        if not result.success:
            logger.error("Test email failed: %s", result.error)
            raise IntegrationFailure("Email failed")
        return {"success": True}
