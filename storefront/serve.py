"""FastAPI application factory for the storefront backend.

    uvicorn storefront.serve:app
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.routes import register_api_routes
from storefront.channels.email import EmailChannel
from storefront.channels.protocol import Channel
from storefront.checkout.gateway import PaymentGateway, StripeGateway
from storefront.checkout.service import CheckoutService
from storefront.config import Settings
from storefront.config import settings as default_settings
from storefront.errors import StorefrontError
from storefront.inventory.store import InventoryStore
from storefront.security.middleware import build_limiter, install_security_middleware
from storefront.sessions.manager import SessionManager
from storefront.webhooks.fulfillment import FulfillmentService
from storefront.webhooks.handlers import WebhookAudit, register_webhook_routes
from storefront.webhooks.idempotency import EventLedger, build_ledger

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def _storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse({"error": "Invalid request"}, status_code=400)


def create_app(
    settings: Settings | None = None,
    *,
    inventory: InventoryStore | None = None,
    gateway: PaymentGateway | None = None,
    mail_channel: Channel | None = None,
    ledger: EventLedger | None = None,
) -> FastAPI:
    """Build the app with its collaborators wired into ``app.state``.

    Any collaborator left as None is built from settings.
    """
    settings = settings or default_settings

    inventory = inventory or InventoryStore(settings.default_inventory)
    gateway = gateway or StripeGateway(settings.stripe_secret_key)
    mail_channel = mail_channel or EmailChannel.from_settings(settings)
    ledger = ledger or build_ledger(settings.redis_url)

    app = FastAPI(title="Storefront backend")
    app.state.settings = settings
    app.state.inventory = inventory
    app.state.sessions = SessionManager(ttl_seconds=settings.session_ttl_seconds)
    app.state.checkout = CheckoutService(inventory, gateway, settings)
    app.state.mail_channel = mail_channel
    app.state.fulfillment = FulfillmentService(inventory, ledger, mail_channel, settings.notify_email)
    app.state.webhook_audit = WebhookAudit()

    app.add_exception_handler(StorefrontError, _storefront_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    limiter = build_limiter()
    register_api_routes(app, limiter, settings)
    register_webhook_routes(app)
    install_security_middleware(app, limiter, settings)

    if not mail_channel.is_configured:
        logger.warning("Mail channel not configured; order emails will fail")
    logger.info("Storefront app ready (colors=%s)", ",".join(sorted(inventory.colors)))
    return app


configure_logging(default_settings.log_level)
app = create_app()
