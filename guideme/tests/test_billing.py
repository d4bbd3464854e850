import hashlib
import hmac
import json
import os
import time
import unittest
from unittest import mock

import stripe
from fastapi.testclient import TestClient

from guideme.app import create_app
from guideme.billing_gateway import StripeGateway, first_price_id
from guideme.config import get_settings
from guideme.db import InMemoryDbClient
from guideme.dependencies import get_billing_gateway, get_db_client
from guideme.security import create_access_token

TEST_ENV = {"GEMINI_API_KEY": "", "SITE_URL": "https://guidemeabc.example"}
WEBHOOK_SECRET = "whsec_test"
PRICE_IDS = {"starter": "price_starter", "growth": "price_growth", "pro": "price_pro"}


def _signed(payload: dict, secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    body = json.dumps(payload).encode()
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode(), f"{timestamp}.".encode() + body, hashlib.sha256
    ).hexdigest()
    return body, f"t={timestamp},v1={digest}"


class FakeGateway(StripeGateway):
    """Real signature checks; the calls that would hit Stripe are recorded."""

    def __init__(self):
        super().__init__(
            secret_key="sk_test", webhook_secret=WEBHOOK_SECRET, price_ids=dict(PRICE_IDS)
        )
        self.checkouts = []
        self.subscriptions = {}

    def create_checkout_session(self, **kwargs):
        if not self.price_ids.get(kwargs["plan"]):
            return super().create_checkout_session(**kwargs)
        self.checkouts.append(kwargs)
        return "https://checkout.stripe.test/session"

    def retrieve_subscription(self, subscription_id):
        return self.subscriptions[subscription_id]


class BillingTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.dict(os.environ, TEST_ENV)
        patcher.start()
        self.addCleanup(patcher.stop)
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)

        self.gateway = FakeGateway()
        app = create_app()
        app.dependency_overrides[get_billing_gateway] = lambda: self.gateway
        self.client = TestClient(app)
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()

        self.owner, self.headers = self._sign_in("owner@example.com")
        self.business = self.db.create_business(
            self.owner.id, "Dive Shop", "dive-shop", island="bonaire"
        )

    def _sign_in(self, email, app_metadata=None):
        user = self.db.create_user(email, app_metadata=app_metadata)
        self.db.upsert_profile(user.id)
        token = create_access_token(user.id, get_settings().jwt_secret, 3600)
        return user, {"Authorization": f"Bearer {token}"}

    def _checkout(self, headers=None, **payload):
        body = {"plan": "growth", "businessId": self.business.id, "lang": "nl"}
        body.update(payload)
        return self.client.post(
            "/api/billing/checkout", json=body, headers=headers or self.headers
        )

    def _webhook(self, event):
        body, signature = _signed(event)
        return self.client.post(
            "/api/stripe/webhook",
            content=body,
            headers={"stripe-signature": signature, "content-type": "application/json"},
        )

    # Checkout

    def test_checkout_returns_stripe_url(self):
        response = self._checkout()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"url": "https://checkout.stripe.test/session"})

        call = self.gateway.checkouts[0]
        self.assertEqual(call["plan"], "growth")
        self.assertEqual(call["business_id"], self.business.id)
        self.assertEqual(call["email"], "owner@example.com")
        self.assertEqual(
            call["success_url"],
            "https://guidemeabc.example/nl/business/dashboard?checkout=success",
        )
        self.assertEqual(
            call["cancel_url"], "https://guidemeabc.example/nl/pricing?checkout=cancelled"
        )

    def test_checkout_validation(self):
        self.assertEqual(self._checkout(plan="free").status_code, 400)
        self.assertEqual(self._checkout(businessId="missing").status_code, 404)

        _, stranger = self._sign_in("stranger@example.com")
        self.assertEqual(self._checkout(headers=stranger).status_code, 403)
        _, admin = self._sign_in("admin@example.com", {"roles": ["admin"]})
        self.assertEqual(self._checkout(headers=admin).status_code, 200)

        response = self.client.post(
            "/api/billing/checkout",
            json={"plan": "growth", "businessId": self.business.id},
        )
        self.assertEqual(response.status_code, 401)

    def test_checkout_without_price_is_unavailable(self):
        self.gateway.price_ids["pro"] = None
        self.assertEqual(self._checkout(plan="pro").status_code, 503)

    # Webhook

    def test_webhook_rejects_bad_signatures(self):
        response = self.client.post("/api/stripe/webhook", content=b"{}")
        self.assertEqual(response.status_code, 400)

        body, signature = _signed({"type": "ping"}, secret="whsec_other")
        response = self.client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": signature}
        )
        self.assertEqual(response.status_code, 400)

        self.gateway.webhook_secret = None
        body, signature = _signed({"type": "ping"})
        response = self.client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": signature}
        )
        self.assertEqual(response.status_code, 500)

    def test_checkout_completed_creates_subscription(self):
        self.gateway.subscriptions["sub_1"] = {
            "id": "sub_1",
            "status": "active",
            "customer": {"id": "cus_1"},
            "current_period_end": 1893456000,
            "cancel_at_period_end": False,
            "items": {"data": [{"price": {"id": "price_pro"}}]},
        }
        response = self._webhook(
            {
                "type": "checkout.session.completed",
                "data": {
                    "object": {
                        "id": "cs_1",
                        "mode": "subscription",
                        "subscription": "sub_1",
                        "metadata": {"business_id": self.business.id},
                    }
                },
            }
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True})

        subscription = self.db.get_subscription(self.business.id)
        self.assertEqual(subscription.plan, "pro")
        self.assertEqual(subscription.status, "active")
        self.assertEqual(subscription.stripe_customer_id, "cus_1")
        self.assertEqual(subscription.stripe_subscription_id, "sub_1")
        self.assertEqual(subscription.current_period_end, 1893456000.0)

    def test_checkout_completed_without_business_is_acknowledged(self):
        response = self._webhook(
            {
                "type": "checkout.session.completed",
                "data": {"object": {"id": "cs_2", "mode": "subscription", "metadata": {}}},
            }
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.subscriptions, {})

    def test_subscription_updated_and_deleted(self):
        self.db.upsert_subscription(
            self.business.id, plan="starter", status="active", stripe_subscription_id="sub_1"
        )
        self._webhook(
            {
                "type": "customer.subscription.updated",
                "data": {
                    "object": {
                        "id": "sub_1",
                        "status": "past_due",
                        "customer": "cus_1",
                        "cancel_at_period_end": True,
                        "items": {"data": [{"price": {"id": "price_growth"}}]},
                    }
                },
            }
        )
        subscription = self.db.get_subscription(self.business.id)
        self.assertEqual((subscription.plan, subscription.status), ("growth", "past_due"))
        self.assertTrue(subscription.cancel_at_period_end)

        self._webhook(
            {
                "type": "customer.subscription.deleted",
                "data": {"object": {"id": "sub_1", "ended_at": 1700000000}},
            }
        )
        subscription = self.db.get_subscription(self.business.id)
        self.assertEqual(subscription.status, "canceled")
        self.assertEqual(subscription.ends_at, 1700000000.0)
        self.assertEqual(subscription.paid_until, 1700000000.0)
        self.assertFalse(subscription.cancel_at_period_end)

    def test_unhandled_events_are_acknowledged(self):
        response = self._webhook({"type": "invoice.paid", "data": {"object": {}}})
        self.assertEqual(response.status_code, 200)


class StripeGatewayTests(unittest.TestCase):
    def test_plan_for_price(self):
        gateway = StripeGateway("sk", "wh", dict(PRICE_IDS))
        self.assertEqual(gateway.plan_for_price("price_pro"), "pro")
        self.assertEqual(gateway.plan_for_price("price_unknown"), "starter")
        self.assertEqual(gateway.plan_for_price(None), "starter")

    def test_first_price_id(self):
        self.assertEqual(
            first_price_id({"items": {"data": [{"price": {"id": "p"}}]}}), "p"
        )
        self.assertIsNone(first_price_id({"items": {"data": []}}))

    def test_construct_event_checks_signature(self):
        gateway = StripeGateway("sk", WEBHOOK_SECRET)
        body, signature = _signed({"type": "ping"})
        self.assertEqual(gateway.construct_event(body, signature), {"type": "ping"})
        with self.assertRaises(stripe.SignatureVerificationError):
            gateway.construct_event(body, signature.replace("v1=", "v1=0"))


if __name__ == "__main__":
    unittest.main()
