"""Webhook endpoint tests.

Verifies:
- Verified completed checkouts move stock and send one order email
- Redeliveries are acknowledged without touching stock or mail
- Tampered, stale, or unsigned payloads are rejected with 400
- Other event types are acknowledged and ignored
- Ledger failures surface as 500 so Stripe redelivers
"""

from __future__ import annotations

import json
import time

from tests.factories import NOTIFY_EMAIL, completed_event, sign_payload


class TestVerifiedDelivery:

    def test_completed_checkout_decrements_and_mails(self, post_event, inventory, mail_channel):
        event = completed_event([{"color": "Red", "qty": 1}, {"color": "Blue", "qty": 2}])
        resp = post_event(event)
        assert resp.status_code == 200
        assert resp.json() == {"received": True}

        stock = inventory.get()
        assert stock["Red"] == 9
        assert stock["Blue"] == 8
        assert stock["Black"] == 10

        assert len(mail_channel.sent) == 1
        mail = mail_channel.sent[0]
        assert mail["subject"] == "New Order Received"
        assert mail["to"] == [NOTIFY_EMAIL]
        assert "1 × Red" in mail["body"]
        assert "2 × Blue" in mail["body"]
        assert "buyer@example.com" in mail["body"]

    def test_oversold_order_still_acknowledged(self, post_event, inventory, mail_channel):
        resp = post_event(completed_event([{"color": "Red", "qty": 12}]))
        assert resp.status_code == 200
        assert inventory.get()["Red"] == 0
        assert "OVERSOLD" in mail_channel.sent[0]["body"]

    def test_unknown_color_ignored(self, post_event, inventory, mail_channel):
        resp = post_event(completed_event([{"color": "Purple", "qty": 1}, {"color": "Red", "qty": 1}]))
        assert resp.status_code == 200
        stock = inventory.get()
        assert "Purple" not in stock
        assert stock["Red"] == 9
        assert "Purple" in mail_channel.sent[0]["body"]

    def test_mail_failure_does_not_fail_webhook(self, post_event, inventory, mail_channel):
        mail_channel.should_fail = True
        resp = post_event(completed_event([{"color": "Red", "qty": 1}]))
        assert resp.status_code == 200
        assert inventory.get()["Red"] == 9


class TestRedelivery:

    def test_same_event_twice(self, post_event, inventory, mail_channel):
        event = completed_event([{"color": "Red", "qty": 1}, {"color": "Blue", "qty": 2}])
        assert post_event(event).status_code == 200

        resp = post_event(event)
        assert resp.status_code == 200
        assert resp.json() == {"received": True, "duplicate": True}

        stock = inventory.get()
        assert stock["Red"] == 9
        assert stock["Blue"] == 8
        assert len(mail_channel.sent) == 1

    def test_new_event_id_same_checkout_session(self, post_event, inventory, mail_channel):
        items = [{"color": "Black", "qty": 3}]
        post_event(completed_event(items, event_id="evt_a", session_id="cs_same"))
        resp = post_event(completed_event(items, event_id="evt_b", session_id="cs_same"))
        assert resp.json().get("duplicate") is True
        assert inventory.get()["Black"] == 7
        assert len(mail_channel.sent) == 1

    def test_distinct_sessions_both_fulfilled(self, post_event, inventory, mail_channel):
        items = [{"color": "Black", "qty": 1}]
        post_event(completed_event(items, event_id="evt_a", session_id="cs_one"))
        post_event(completed_event(items, event_id="evt_b", session_id="cs_two"))
        assert inventory.get()["Black"] == 8
        assert len(mail_channel.sent) == 2


class TestSignatureRejection:

    def test_tampered_body(self, client, inventory, mail_channel):
        event = completed_event([{"color": "Red", "qty": 1}])
        body = json.dumps(event).encode()
        signature = sign_payload(body)
        tampered = body.replace(b'\\"qty\\": 1', b'\\"qty\\": 9')
        assert tampered != body

        resp = client.post("/webhook", content=tampered, headers={"Stripe-Signature": signature})
        assert resp.status_code == 400
        assert resp.text.startswith("Webhook Error:")
        assert inventory.get()["Red"] == 10
        assert mail_channel.sent == []

    def test_wrong_secret(self, post_event, inventory):
        event = completed_event([{"color": "Red", "qty": 1}])
        bad = sign_payload(json.dumps(event).encode(), secret="whsec_other")
        resp = post_event(event, signature=bad)
        assert resp.status_code == 400
        assert inventory.get()["Red"] == 10

    def test_missing_header(self, client, inventory, mail_channel):
        body = json.dumps(completed_event([{"color": "Red", "qty": 1}])).encode()
        resp = client.post("/webhook", content=body)
        assert resp.status_code == 400
        assert inventory.get()["Red"] == 10
        assert mail_channel.sent == []

    def test_stale_timestamp(self, post_event, inventory):
        event = completed_event([{"color": "Red", "qty": 1}])
        old = sign_payload(json.dumps(event).encode(), timestamp=int(time.time()) - 3600)
        resp = post_event(event, signature=old)
        assert resp.status_code == 400
        assert inventory.get()["Red"] == 10

    def test_malformed_header(self, post_event):
        event = completed_event([{"color": "Red", "qty": 1}])
        resp = post_event(event, signature="garbage")
        assert resp.status_code == 400

    def test_rejection_does_not_leak_secret(self, post_event):
        resp = post_event(completed_event([]), signature="t=1,v1=deadbeef")
        assert "whsec_" not in resp.text


class TestOtherEvents:

    def test_ignored_event_type(self, post_event, inventory, mail_channel):
        event = {
            "id": "evt_pi",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_1"}},
        }
        resp = post_event(event)
        assert resp.status_code == 200
        assert resp.json() == {"received": True}
        assert inventory.get() == {"Black": 10, "Red": 10, "Blue": 10}
        assert mail_channel.sent == []


class TestUnidentifiedEvent:

    def test_completed_checkout_without_ids_not_fulfilled(self, post_event, inventory, mail_channel):
        event = completed_event([{"color": "Red", "qty": 1}], event_id="", session_id="")
        assert post_event(event).status_code == 200
        assert post_event(event).status_code == 200
        assert inventory.get()["Red"] == 10
        assert mail_channel.sent == []


class TestLedgerFailure:

    def test_ledger_error_is_500_and_stock_untouched(self, post_event, ledger, inventory, mail_channel, monkeypatch):
        def boom(key):
            raise ConnectionError("ledger down")

        monkeypatch.setattr(ledger, "claim", boom)
        resp = post_event(completed_event([{"color": "Red", "qty": 1}]))
        assert resp.status_code == 500
        assert resp.json() == {"error": "Webhook processing failed"}
        assert inventory.get()["Red"] == 10
        assert mail_channel.sent == []


class TestWebhookStatus:

    def test_requires_admin(self, client):
        assert client.get("/webhook/status").status_code == 403

    def test_counts_by_status(self, app, post_event, admin_client):
        event = completed_event([{"color": "Red", "qty": 1}])
        post_event(event)
        post_event(event)
        post_event(event, signature="garbage")

        resp = admin_client.get("/webhook/status")
        assert resp.status_code == 200
        counts = resp.json()["counts"]
        assert counts["fulfilled"] == 1
        assert counts["duplicate"] == 1
        assert counts["signature_failed"] == 1
