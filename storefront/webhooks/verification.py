"""Webhook signature verification for Stripe.

Security contract:
- Verification runs on the raw request bytes, before any JSON parsing
- Missing secret -> verification always fails (fail-closed)
- Timestamp tolerance (default 300s) limits replay of captured payloads
- Comparison is constant-time (done inside the Stripe SDK)
"""

from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from storefront.errors import SignatureFailure

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"

_DEFAULT_TOLERANCE_SECONDS = 300


def verify_stripe(
    body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = _DEFAULT_TOLERANCE_SECONDS,
) -> None:
    """Verify a Stripe-Signature header (``t=<ts>,v1=<sig>[,...]``).

    Raises:
        SignatureFailure: header missing, secret unset, bad signature, or
            timestamp outside tolerance
    """
    if not secret:
        logger.warning("Stripe webhook secret not set, rejecting webhook")
        raise SignatureFailure("Webhook secret not configured")
    if not signature_header:
        raise SignatureFailure("Missing Stripe-Signature header")

    try:
        payload = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SignatureFailure("Payload is not valid UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(payload, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning("Stripe webhook signature rejected: %s", e.user_message or e)
        raise SignatureFailure(str(e.user_message or "Invalid signature")) from e


def construct_event(
    body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = _DEFAULT_TOLERANCE_SECONDS,
) -> dict[str, Any]:
    """Verify the signature, then decode the event as plain JSON."""
    verify_stripe(body, signature_header, secret, tolerance)
    try:
        event = json.loads(body)
    except ValueError as e:
        raise SignatureFailure("Invalid payload") from e
    if not isinstance(event, dict):
        raise SignatureFailure("Invalid payload")
    return event
