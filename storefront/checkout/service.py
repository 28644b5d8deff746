"""Checkout initiator: validate a cart, then hand off to Stripe.

The stock check here is advisory. Nothing is reserved; stock only moves
when the completed-checkout webhook is fulfilled.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from storefront.checkout.gateway import PaymentGateway
from storefront.config import Settings
from storefront.errors import EmptyCart, ValidationFailure
from storefront.inventory.store import CartItem, InventoryStore
from storefront.schemas import CartItemInput

logger = logging.getLogger(__name__)

METADATA_ITEMS_KEY = "items"
METADATA_NOTIFY_KEY = "notify_email"
METADATA_SHIPPING_STATE_KEY = "shipping_state"


def parse_cart(raw: Any) -> list[CartItem]:
    """Turn a request's ``items`` value into cart lines.

    Raises:
        EmptyCart: items missing, not a list, or empty
        ValidationFailure: an entry is not ``{color: str, qty: int >= 1}``
    """
    if raw is None or not isinstance(raw, list):
        raise EmptyCart("Invalid cart format")
    if not raw:
        raise EmptyCart()

    items: list[CartItem] = []
    for entry in raw:
        try:
            parsed = CartItemInput.model_validate(entry)
        except ValidationError as e:
            raise ValidationFailure("Invalid cart item") from e
        items.append(CartItem(color=parsed.color, qty=parsed.qty))
    return items


def serialize_cart(items: list[CartItem]) -> str:
    return json.dumps([{"color": i.color, "qty": i.qty} for i in items], separators=(",", ":"))


class CheckoutService:
    """Builds Stripe Checkout Session parameters from a validated cart."""

    def __init__(self, inventory: InventoryStore, gateway: PaymentGateway, settings: Settings):
        self._inventory = inventory
        self._gateway = gateway
        self._settings = settings

    def create_checkout(self, raw_items: Any, shipping_state: str | None = None) -> str:
        """Validate the cart and return the hosted checkout URL."""
        items = parse_cart(raw_items)
        self._inventory.check_available(items)

        params = self.build_session_params(items, shipping_state)
        ref = self._gateway.create_checkout_session(params)
        logger.info(
            "Checkout started: session=%s lines=%d units=%d",
            ref.session_id,
            len(items),
            sum(i.qty for i in items),
        )
        return ref.url

    def build_session_params(self, items: list[CartItem], shipping_state: str | None) -> dict[str, Any]:
        s = self._settings
        client_url = s.client_url.rstrip("/")
        return {
            "mode": "payment",
            "payment_method_types": ["card"],
            "customer_creation": "always",
            "line_items": [
                {
                    "price_data": {
                        "currency": s.currency,
                        "product_data": {"name": f"{s.store_name} {item.color} Sunglasses"},
                        "unit_amount": s.unit_amount_cents,
                    },
                    "quantity": item.qty,
                }
                for item in items
            ],
            "metadata": {
                METADATA_ITEMS_KEY: serialize_cart(items),
                METADATA_NOTIFY_KEY: s.notify_email,
                METADATA_SHIPPING_STATE_KEY: shipping_state or "Unknown",
            },
            "shipping_address_collection": {"allowed_countries": list(s.allowed_countries)},
            "automatic_tax": {"enabled": True},
            "shipping_options": [
                {
                    "shipping_rate_data": {
                        "type": "fixed_amount",
                        "fixed_amount": {"amount": s.shipping_amount_cents, "currency": s.currency},
                        "display_name": "Flat Rate Shipping",
                    }
                }
            ],
            "success_url": f"{client_url}/success.html",
            "cancel_url": f"{client_url}/cart.html",
        }
