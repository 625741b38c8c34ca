import json
import unittest

import httpx
from fastapi.testclient import TestClient

from app.main import create_app
from upstream import (
    CREATE_ORDER,
    GET_PAYMENT_STATUS,
    SEARCH_CUSTOMERS,
    FakeUpstream,
    body_of,
    connection_refused,
    delete_draft_order,
    invoice_data,
    make_settings,
    no_customers,
    payment_status_ok,
    shopify_order,
)

ACK = {"success": True, "message": "Webhook received"}
CONTEXT = json.dumps({"variantId": "999", "quantity": 1, "customerEmail": "buyer@example.com", "draftOrderId": "1001"})


def status_changed(status="Paid", udf=CONTEXT, event_type="TransactionStatusChanged"):
    return {"EventType": event_type, "Event": "TransactionsStatusChanged", "Data": invoice_data(status=status, udf=udf)}


class WebhookTestCase(unittest.TestCase):
    settings_overrides = {}

    def setUp(self):
        self.upstream = FakeUpstream()
        self.upstream.on(SEARCH_CUSTOMERS, no_customers())
        self.upstream.on(CREATE_ORDER, shopify_order(order_id=5001))
        self.upstream.on(delete_draft_order(1001), httpx.Response(200, json={}))
        self.app = create_app(make_settings(**self.settings_overrides), transport=self.upstream.transport)
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)


class TestWebhook(WebhookTestCase):
    def test_paid_event_creates_order_after_ack(self):
        res = self.client.post("/api/webhook", json=status_changed())

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), ACK)
        [order_call] = self.upstream.calls_to(CREATE_ORDER)
        order = body_of(order_call)["order"]
        self.assertEqual(order["transactions"][0]["authorization"], "4242")
        self.assertEqual(order["line_items"], [{"variant_id": 999, "quantity": 1}])
        self.assertEqual(len(self.upstream.calls_to(delete_draft_order(1001))), 1)

    def test_legacy_path_behaves_the_same(self):
        res = self.client.post("/api/myfatoorah-webhook", json=status_changed())
        self.assertEqual(res.json(), ACK)
        self.assertEqual(len(self.upstream.calls_to(CREATE_ORDER)), 1)

    def test_ignored_events_are_acknowledged(self):
        for event in [
            status_changed(status="Pending"),
            status_changed(status="Failed"),
            status_changed(event_type="RefundStatusChanged"),
            {"EventType": "TransactionStatusChanged"},
            {},
        ]:
            with self.subTest(event=event):
                res = self.client.post("/api/webhook", json=event)
                self.assertEqual(res.status_code, 200)
                self.assertEqual(res.json(), ACK)
        self.assertEqual(self.upstream.calls, [])

    def test_invalid_json_is_acknowledged(self):
        res = self.client.post("/api/webhook", content=b"not json", headers={"Content-Type": "application/json"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), ACK)
        self.assertEqual(self.upstream.calls, [])

    def test_background_failure_still_acknowledged(self):
        self.upstream.on(CREATE_ORDER, connection_refused)
        res = self.client.post("/api/webhook", json=status_changed())
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), ACK)

    def test_malformed_paid_data_is_swallowed(self):
        event = {"EventType": "TransactionStatusChanged", "Data": {"InvoiceStatus": "Paid"}}
        res = self.client.post("/api/webhook", json=event)
        self.assertEqual(res.json(), ACK)
        self.assertEqual(self.upstream.calls, [])

    def test_duplicate_delivery_creates_one_order(self):
        self.client.post("/api/webhook", json=status_changed())
        self.client.post("/api/webhook", json=status_changed())
        self.assertEqual(len(self.upstream.calls_to(CREATE_ORDER)), 1)

    def test_webhook_then_poll_share_the_order(self):
        self.upstream.on(GET_PAYMENT_STATUS, payment_status_ok(status="Paid", udf=CONTEXT))

        self.client.post("/api/webhook", json=status_changed())
        res = self.client.get("/api/verify-payment", params={"paymentId": "PAY-1"})

        self.assertEqual(res.json()["orderId"], "5001")
        self.assertEqual(len(self.upstream.calls_to(CREATE_ORDER)), 1)


class TestWebhookWithoutDedup(WebhookTestCase):
    settings_overrides = {"ORDER_DEDUP_ENABLED": False}

    def test_duplicate_delivery_creates_two_orders(self):
        self.client.post("/api/webhook", json=status_changed())
        self.client.post("/api/webhook", json=status_changed())
        self.assertEqual(len(self.upstream.calls_to(CREATE_ORDER)), 2)


class TestWebhookRefetch(WebhookTestCase):
    settings_overrides = {"WEBHOOK_REFETCH_STATUS": True}

    def test_status_is_confirmed_with_gateway(self):
        self.upstream.on(GET_PAYMENT_STATUS, payment_status_ok(status="Pending", udf=CONTEXT))

        res = self.client.post("/api/webhook", json=status_changed())

        self.assertEqual(res.json(), ACK)
        self.assertEqual(body_of(self.upstream.calls_to(GET_PAYMENT_STATUS)[0]), {"Key": "4242", "KeyType": "InvoiceId"})
        self.assertEqual(self.upstream.calls_to(CREATE_ORDER), [])

    def test_confirmed_paid_creates_order(self):
        self.upstream.on(GET_PAYMENT_STATUS, payment_status_ok(status="Paid", udf=CONTEXT))
        self.client.post("/api/webhook", json=status_changed())
        self.assertEqual(len(self.upstream.calls_to(CREATE_ORDER)), 1)


if __name__ == "__main__":
    unittest.main()
