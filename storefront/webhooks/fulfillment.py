"""Order fulfillment: turn a completed Stripe checkout into stock changes
and an operator notification.

No local order record exists. The cart travels in the checkout session
metadata and is read back here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from storefront.channels.protocol import Channel, NotificationMessage, SendResult, deliver
from storefront.checkout.service import (
    METADATA_ITEMS_KEY,
    METADATA_NOTIFY_KEY,
    METADATA_SHIPPING_STATE_KEY,
)
from storefront.inventory.store import CartItem, InventoryStore, OrderApplication
from storefront.webhooks.idempotency import EventLedger

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

ORDER_EMAIL_SUBJECT = "New Order Received"


@dataclass
class ShippingAddress:
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


@dataclass
class CompletedOrder:
    """Everything needed to fulfill one paid checkout session."""

    event_id: str
    checkout_session_id: str
    items: list[CartItem]
    customer_email: str
    shipping_name: str
    shipping_address: ShippingAddress
    shipping_state: str = "Unknown"
    notify_email: str = ""

    @property
    def dedup_key(self) -> str:
        return self.checkout_session_id or self.event_id


@dataclass
class FulfillmentResult:
    status: str  # fulfilled, duplicate, ignored, rejected
    event_type: str
    event_id: str
    order: CompletedOrder | None = None
    application: OrderApplication | None = None
    notification: NotificationMessage | None = None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _parse_items(raw: Any) -> list[CartItem]:
    """Read the cart back out of metadata. Malformed entries are skipped."""
    try:
        entries = json.loads(raw or "[]")
    except (TypeError, ValueError):
        logger.warning("Checkout metadata items are not valid JSON: %r", raw)
        return []
    if not isinstance(entries, list):
        return []

    items = []
    for entry in entries:
        entry = _as_dict(entry)
        color, qty = entry.get("color"), entry.get("qty")
        if not isinstance(color, str) or isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            logger.warning("Skipping malformed cart entry in metadata: %r", entry)
            continue
        items.append(CartItem(color=color, qty=qty))
    return items


def _parse_address(session: dict) -> ShippingAddress:
    raw = (
        _as_dict(session.get("shipping")).get("address")
        or _as_dict(_as_dict(session.get("collected_information")).get("shipping_details")).get("address")
        or _as_dict(session.get("shipping_details")).get("address")
    )
    raw = _as_dict(raw)
    return ShippingAddress(**{k: str(raw.get(k) or "") for k in ShippingAddress.__dataclass_fields__})


def parse_completed_session(event: dict[str, Any]) -> CompletedOrder:
    """Extract the order from a ``checkout.session.completed`` event."""
    session = _as_dict(_as_dict(event.get("data")).get("object"))
    metadata = _as_dict(session.get("metadata"))
    customer = _as_dict(session.get("customer_details"))

    shipping_name = (
        _as_dict(session.get("shipping")).get("name")
        or _as_dict(session.get("shipping_details")).get("name")
        or customer.get("name")
        or "No name"
    )
    email = session.get("customer_email") or customer.get("email") or "Unknown email"

    return CompletedOrder(
        event_id=str(event.get("id") or ""),
        checkout_session_id=str(session.get("id") or ""),
        items=_parse_items(metadata.get(METADATA_ITEMS_KEY)),
        customer_email=str(email),
        shipping_name=str(shipping_name),
        shipping_address=_parse_address(session),
        shipping_state=str(metadata.get(METADATA_SHIPPING_STATE_KEY) or "Unknown"),
        notify_email=str(metadata.get(METADATA_NOTIFY_KEY) or ""),
    )


def format_order_summary(order: CompletedOrder, application: OrderApplication) -> str:
    """Human-readable order mail body for the operator."""
    addr = order.shipping_address
    street = " ".join(p for p in (addr.line1, addr.line2) if p)
    lines = [
        "NEW ORDER",
        "",
        f"Name: {order.shipping_name}",
        f"Email: {order.customer_email}",
        "",
        "Ship To:",
        street,
        f"{addr.city}, {addr.state} {addr.postal_code}".strip(),
        addr.country or "USA",
        f"Shipping State (client-supplied): {order.shipping_state}",
        "",
        "Items:",
    ]
    lines.extend(f"{d.requested} × {d.color}" for d in application.decrements)

    if application.oversold:
        lines += ["", "OVERSOLD (not enough stock when payment completed):"]
        lines.extend(f"{d.shortfall} × {d.color}" for d in application.oversold)
    if application.ignored:
        lines += ["", "Ignored (color not stocked):"]
        lines.extend(f"{i.qty} × {i.color}" for i in application.ignored)

    lines += ["", f"Checkout session: {order.checkout_session_id}"]
    return "\n".join(lines) + "\n"


class FulfillmentService:
    """Applies completed checkouts exactly once and prepares the order mail."""

    def __init__(
        self,
        inventory: InventoryStore,
        ledger: EventLedger,
        channel: Channel,
        notify_email: str,
    ):
        self._inventory = inventory
        self._ledger = ledger
        self._channel = channel
        self._notify_email = notify_email

    def handle_event(self, event: dict[str, Any]) -> FulfillmentResult:
        """Dispatch a verified event. Only completed checkouts do anything."""
        event_type = str(event.get("type") or "unknown")
        event_id = str(event.get("id") or "")
        if event_type != CHECKOUT_COMPLETED:
            logger.info("Ignoring webhook event %s (%s)", event_type, event_id)
            return FulfillmentResult(status="ignored", event_type=event_type, event_id=event_id)

        order = parse_completed_session(event)
        return self.fulfill(order, event_type=event_type)

    def fulfill(self, order: CompletedOrder, event_type: str = CHECKOUT_COMPLETED) -> FulfillmentResult:
        key = order.dedup_key
        if not key:
            # Without an id a redelivery cannot be recognized; never apply it
            logger.error("Completed checkout event carries no session or event id, not fulfilling")
            return FulfillmentResult(status="rejected", event_type=event_type, event_id="", order=order)

        if not self._ledger.claim(key):
            return FulfillmentResult(
                status="duplicate",
                event_type=event_type,
                event_id=order.event_id,
                order=order,
            )

        try:
            application = self._inventory.apply_order(order.items)
        except Exception:
            self._ledger.release(key)
            raise

        logger.info(
            "Order fulfilled: session=%s event=%s lines=%d ignored=%d oversold=%d",
            order.checkout_session_id,
            order.event_id,
            len(application.decrements),
            len(application.ignored),
            len(application.oversold),
        )
        message = NotificationMessage(
            title=ORDER_EMAIL_SUBJECT,
            body=format_order_summary(order, application),
            recipients=[order.notify_email or self._notify_email],
            event_type=event_type,
            metadata={"checkout_session_id": order.checkout_session_id},
        )
        return FulfillmentResult(
            status="fulfilled",
            event_type=event_type,
            event_id=order.event_id,
            order=order,
            application=application,
            notification=message,
        )

    def notify(self, message: NotificationMessage) -> SendResult:
        """Send the order mail. Failures are logged, never raised."""
        try:
            result = deliver(self._channel, message)
        except Exception as e:
            logger.exception("Order notification crashed on %s", self._channel.channel_id)
            return SendResult(success=False, channel_id=self._channel.channel_id, error=str(e))

        if result.success:
            logger.info("Order email sent: %s", message.metadata.get("checkout_session_id", ""))
        else:
            logger.error(
                "Order email failed for %s: %s",
                message.metadata.get("checkout_session_id", ""),
                result.error,
            )
        return result
