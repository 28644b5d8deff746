"""Shared fixtures for the storefront test suite."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.checkout.gateway import CheckoutSessionRef
from storefront.config import Settings
from storefront.inventory.store import InventoryStore
from storefront.serve import create_app
from storefront.webhooks.idempotency import InMemoryEventLedger
from tests.factories import (
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    CLIENT_URL,
    NOTIFY_EMAIL,
    WEBHOOK_SECRET,
    MockChannel,
    sign_payload,
)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        cookie_secure=False,
        client_url=CLIENT_URL,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        notify_email=NOTIFY_EMAIL,
        default_inventory={"Black": 10, "Red": 10, "Blue": 10},
        login_rate_limit="5/minute",
    )


@pytest.fixture
def inventory(test_settings) -> InventoryStore:
    return InventoryStore(test_settings.default_inventory)


@pytest.fixture
def gateway() -> MagicMock:
    gw = MagicMock()
    gw.create_checkout_session.return_value = CheckoutSessionRef(
        session_id="cs_test_1",
        url="https://checkout.stripe.com/c/pay/cs_test_1",
    )
    return gw


@pytest.fixture
def mail_channel() -> MockChannel:
    return MockChannel()


@pytest.fixture
def ledger() -> InMemoryEventLedger:
    return InMemoryEventLedger()


@pytest.fixture
def app(test_settings, inventory, gateway, mail_channel, ledger):
    return create_app(
        test_settings,
        inventory=inventory,
        gateway=gateway,
        mail_channel=mail_channel,
        ledger=ledger,
    )


@pytest.fixture
def client(app):
    """Unauthenticated TestClient."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def admin_client(app):
    """TestClient holding a logged-in admin session cookie."""
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.post("/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        assert resp.status_code == 200
        yield c


@pytest.fixture
def post_event(client):
    """Sign and POST an event dict to /webhook."""

    def _post(event: dict[str, Any], signature: str | None = None):
        body = json.dumps(event).encode()
        headers = {"Content-Type": "application/json"}
        headers["Stripe-Signature"] = signature if signature is not None else sign_payload(body)
        return client.post("/webhook", content=body, headers=headers)

    return _post
