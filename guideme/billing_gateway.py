"""
Thin wrapper around the Stripe SDK used by checkout and the webhook.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe

from shared.plans import GROWTH, PRO, STARTER


class BillingNotConfigured(Exception):
    pass


def unix_to_timestamp(value: Any) -> Optional[float]:
    if not value:
        return None
    return float(value)


def now_timestamp() -> float:
    return datetime.now(timezone.utc).timestamp()


def customer_id(customer: Any) -> Optional[str]:
    if not customer:
        return None
    if isinstance(customer, str):
        return customer
    return customer.get("id")


def first_price_id(subscription: Any) -> Optional[str]:
    try:
        return subscription["items"]["data"][0]["price"]["id"]
    except (KeyError, IndexError, TypeError):
        return None


@dataclass
class StripeGateway:
    secret_key: Optional[str]
    webhook_secret: Optional[str]
    price_ids: Dict[str, Optional[str]] = field(default_factory=dict)

    def _require_key(self) -> str:
        if not self.secret_key:
            raise BillingNotConfigured("Missing STRIPE_SECRET_KEY")
        return self.secret_key

    def plan_for_price(self, price_id: Optional[str]) -> str:
        """Maps a Stripe price id back to a plan; unknown prices count as starter."""
        if not price_id:
            return STARTER
        for plan in (PRO, GROWTH, STARTER):
            if price_id == self.price_ids.get(plan):
                return plan
        return STARTER

    def create_checkout_session(
        self,
        plan: str,
        business_id: str,
        user_id: str,
        email: Optional[str],
        success_url: str,
        cancel_url: str,
    ) -> str:
        price_id = self.price_ids.get(plan)
        if not price_id:
            raise BillingNotConfigured(f"No Stripe price configured for {plan}")
        session = stripe.checkout.Session.create(
            api_key=self._require_key(),
            mode="subscription",
            line_items=[{"price": price_id, "quantity": 1}],
            client_reference_id=business_id,
            customer_email=email,
            metadata={"business_id": business_id, "user_id": user_id, "plan": plan},
            subscription_data={
                "metadata": {"business_id": business_id, "plan": plan}
            },
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return session["url"]

    def construct_event(self, payload: bytes, signature: str) -> dict:
        """Verifies the signature and returns the event as plain JSON."""
        if not self.webhook_secret:
            raise BillingNotConfigured("Missing STRIPE_WEBHOOK_SECRET")
        stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> dict:
        subscription = stripe.Subscription.retrieve(
            subscription_id, api_key=self._require_key()
        )
        return json.loads(str(subscription))
