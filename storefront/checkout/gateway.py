"""Stripe Checkout gateway.

The only place that talks to the Stripe API for session creation.
The API key is passed per request, never set globally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import stripe

from storefront.errors import IntegrationFailure

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSessionRef:
    """What we keep of a hosted checkout session: its id and redirect URL."""

    session_id: str
    url: str


class PaymentGateway(Protocol):
    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSessionRef:
        ...


class StripeGateway:
    """Creates hosted Checkout Sessions through the Stripe SDK."""

    def __init__(self, api_key: str):
        self._api_key = api_key

    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSessionRef:
        if not self._api_key:
            raise IntegrationFailure("Checkout failed")
        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe checkout session failed: %s (%s)", type(e).__name__, e)
            raise IntegrationFailure("Checkout failed") from e

        logger.info("Stripe checkout session created: %s", session.id)
        return CheckoutSessionRef(session_id=session.id, url=session.url)
