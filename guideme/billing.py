"""
Stripe checkout and webhook routes that keep subscriptions in sync.
"""

from __future__ import annotations

import logging
from typing import Any

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request

from guideme.billing_gateway import (
    BillingNotConfigured,
    StripeGateway,
    customer_id,
    first_price_id,
    now_timestamp,
    unix_to_timestamp,
)
from guideme.config import get_settings
from guideme.db import DbClient, UserRecord
from guideme.dependencies import get_billing_gateway, get_db_client
from guideme.guards import require_user
from guideme.schemas import CheckoutRequest, CheckoutResponse
from shared import roles
from shared.locale_path import DEFAULT_LOCALE, is_locale, lang_href
from shared.plans import PLAN_ORDER

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/billing/checkout", response_model=CheckoutResponse)
def create_checkout(
    payload: CheckoutRequest,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    plan = payload.plan.strip().lower()
    if plan not in PLAN_ORDER:
        raise HTTPException(status_code=400, detail="Invalid plan")
    business = db.get_business(payload.businessId)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    if business.user_id != user.id and not roles.is_admin(user):
        raise HTTPException(status_code=403, detail="Forbidden")

    lang = payload.lang if is_locale(payload.lang) else DEFAULT_LOCALE
    site = get_settings().site_url.rstrip("/")
    try:
        url = gateway.create_checkout_session(
            plan=plan,
            business_id=business.id,
            user_id=user.id,
            email=user.email,
            success_url=f"{site}{lang_href(lang, '/business/dashboard')}?checkout=success",
            cancel_url=f"{site}{lang_href(lang, '/pricing')}?checkout=cancelled",
        )
    except BillingNotConfigured as e:
        logger.error("Checkout unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Billing not configured")
    except stripe.StripeError as e:
        logger.exception("Stripe checkout failed for %s", business.id)
        raise HTTPException(status_code=502, detail=str(e))
    return CheckoutResponse(url=url)


def _handle_checkout_completed(
    session: Any, db: DbClient, gateway: StripeGateway
) -> None:
    if session.get("mode") != "subscription":
        return
    metadata = session.get("metadata") or {}
    business_id = (metadata.get("business_id") or "").strip() or str(
        session.get("client_reference_id") or ""
    ).strip()
    if not business_id:
        # Acknowledge anyway so Stripe stops retrying.
        logger.warning("Checkout session %s without business id", session.get("id"))
        return

    subscription = gateway.retrieve_subscription(session["subscription"])
    db.upsert_subscription(
        business_id,
        plan=gateway.plan_for_price(first_price_id(subscription)),
        status=str(subscription.get("status") or "active"),
        stripe_customer_id=customer_id(subscription.get("customer")),
        stripe_subscription_id=str(subscription["id"]),
        current_period_end=unix_to_timestamp(subscription.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        ends_at=None,
        paid_until=None,
    )


def _handle_subscription_updated(
    subscription: Any, db: DbClient, gateway: StripeGateway
) -> None:
    db.update_subscription_by_stripe_id(
        str(subscription["id"]),
        plan=gateway.plan_for_price(first_price_id(subscription)),
        status=str(subscription.get("status") or "active"),
        stripe_customer_id=customer_id(subscription.get("customer")),
        current_period_end=unix_to_timestamp(subscription.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
    )


def _handle_subscription_deleted(subscription: Any, db: DbClient) -> None:
    ended_at = unix_to_timestamp(subscription.get("ended_at")) or now_timestamp()
    db.update_subscription_by_stripe_id(
        str(subscription["id"]),
        status="canceled",
        ends_at=ended_at,
        paid_until=ended_at,
        cancel_at_period_end=False,
    )


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    db: DbClient = Depends(get_db_client),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing stripe-signature")

    payload = await request.body()
    try:
        event = gateway.construct_event(payload, signature)
    except BillingNotConfigured as e:
        logger.error("Webhook unavailable: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise HTTPException(status_code=400, detail=f"Webhook signature failed: {e}")

    event_type = event["type"]
    obj = event["data"]["object"]
    logger.info("Stripe event %s", event_type)
    if event_type == "checkout.session.completed":
        _handle_checkout_completed(obj, db, gateway)
    elif event_type == "customer.subscription.updated":
        _handle_subscription_updated(obj, db, gateway)
    elif event_type == "customer.subscription.deleted":
        _handle_subscription_deleted(obj, db)
    return {"received": True}
