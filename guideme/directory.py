"""
Read-side helpers shared by the JSON API and the rendered pages.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from guideme.db import DbClient, ListingRecord
from shared.plans import plan_rank
from shared.types import ClickEventType, SubscriptionPlan, SubscriptionStatus

TRACKED_STATS = (
    ClickEventType.WHATSAPP.value,
    ClickEventType.ROUTE.value,
    ClickEventType.CALL.value,
    ClickEventType.WEBSITE.value,
)

DEFAULT_CATEGORIES = (
    ("Restaurants", "restaurants"),
    ("Shops", "shops"),
    ("Services", "services"),
)


@dataclass
class ListingView:
    listing: ListingRecord
    plan: str
    subscription_status: Optional[str] = None
    category_name: Optional[str] = None

    @property
    def has_mini_site(self) -> bool:
        return (
            self.plan == SubscriptionPlan.PRO.value
            and self.subscription_status == SubscriptionStatus.ACTIVE.value
        )


def listing_view(
    db: DbClient, listing: ListingRecord, categories: Optional[Dict[str, str]] = None
) -> ListingView:
    """The plan a listing is shown with: its own column first, then the business subscription."""
    subscription = (
        db.get_subscription(listing.business_id) if listing.business_id else None
    )
    plan = listing.subscription_plan or (
        subscription.plan if subscription else SubscriptionPlan.FREE.value
    )
    return ListingView(
        listing=listing,
        plan=plan,
        subscription_status=subscription.status if subscription else None,
        category_name=(categories or {}).get(listing.category_id or ""),
    )


def listing_plan(db: DbClient, listing: ListingRecord) -> str:
    return listing_view(db, listing).plan


def ranked_listings(
    db: DbClient,
    island: Optional[str] = None,
    category_id: Optional[str] = None,
) -> List[ListingView]:
    """Active listings, paying plans first and newest first within a plan."""
    categories = category_names(db)
    views = [
        listing_view(db, listing, categories)
        for listing in db.list_public_listings(island=island, category_id=category_id)
    ]
    return sorted(views, key=lambda view: plan_rank(view.plan))


def category_names(db: DbClient) -> Dict[str, str]:
    return {c.id: c.name for c in db.list_categories()}


def click_stats(db: DbClient, listing: ListingRecord, days: int = 30) -> Dict[str, int]:
    """Counts tracked contact actions for a listing over the last `days` days."""
    since = time.time() - days * 24 * 60 * 60
    counts = {event_type: 0 for event_type in TRACKED_STATS}
    keys = {listing.id}
    if listing.business_id:
        keys.add(listing.business_id)
    for key in keys:
        for event in db.list_click_events(key, since):
            if event.event_type in counts:
                counts[event.event_type] += 1
    return counts


def seed_default_categories(db: DbClient) -> int:
    return db.upsert_categories(DEFAULT_CATEGORIES)
