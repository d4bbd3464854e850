# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Static plan tables: feature capabilities, pricing and listing rank."""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from shared.types import SubscriptionPlan

STARTER = "starter"
GROWTH = "growth"
PRO = "pro"
ENTERPRISE = "enterprise"

INF = math.inf

_PLAN_ALIASES = {
    "start": STARTER,
    "starter": STARTER,
    "groei": GROWTH,
    "growth": GROWTH,
    "pro": PRO,
    "enterprise": ENTERPRISE,
}


@dataclass(frozen=True)
class PlanCapabilities:
    plan: str

    max_categories: float
    max_locations: float
    max_deals: float
    max_photos: float
    max_videos: float

    has_mini_site: bool = False
    has_reviews: bool = False
    has_events: bool = False
    has_coupons: bool = False
    has_blog: bool = False
    has_spotlight: bool = False
    has_lead_management: bool = False
    has_team_members: bool = False
    has_api_access: bool = False
    has_csv_import_export: bool = False
    has_white_label_mini_site: bool = False

    def as_dict(self) -> Dict[str, Any]:
        """JSON-safe view: unlimited values are reported as None."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, float) and math.isinf(value):
                data[key] = None
            elif isinstance(value, float):
                data[key] = int(value)
        return data


PLAN_CAPABILITIES: Dict[str, PlanCapabilities] = {
    STARTER: PlanCapabilities(
        plan=STARTER,
        max_categories=1,
        max_locations=1,
        max_deals=1,
        max_photos=10,
        max_videos=0,
    ),
    GROWTH: PlanCapabilities(
        plan=GROWTH,
        max_categories=INF,
        max_locations=3,
        max_deals=INF,
        max_photos=30,
        max_videos=5,
        has_reviews=True,
        has_team_members=True,
    ),
    PRO: PlanCapabilities(
        plan=PRO,
        max_categories=INF,
        max_locations=INF,
        max_deals=INF,
        max_photos=INF,
        max_videos=INF,
        has_mini_site=True,
        has_reviews=True,
        has_events=True,
        has_coupons=True,
        has_blog=True,
        has_spotlight=True,
        has_lead_management=True,
        has_team_members=True,
    ),
    ENTERPRISE: PlanCapabilities(
        plan=ENTERPRISE,
        max_categories=INF,
        max_locations=INF,
        max_deals=INF,
        max_photos=INF,
        max_videos=INF,
        has_mini_site=True,
        has_reviews=True,
        has_events=True,
        has_coupons=True,
        has_blog=True,
        has_spotlight=True,
        has_lead_management=True,
        has_team_members=True,
        has_api_access=True,
        has_csv_import_export=True,
        has_white_label_mini_site=True,
    ),
}


def normalize_plan(value: Any) -> str:
    """Maps any stored plan value (English or Dutch) onto a capability tier."""
    key = str(value if value is not None else "").strip().lower()
    return _PLAN_ALIASES.get(key, STARTER)


def get_capabilities(plan: Any) -> PlanCapabilities:
    return PLAN_CAPABILITIES[normalize_plan(plan)]


@dataclass(frozen=True)
class PlanPricing:
    key: str
    label: str
    price_monthly: int
    ai_daily_limit: int
    featured_slots: int
    perks: tuple


PLAN_ORDER: List[str] = [STARTER, GROWTH, PRO]

PLANS: Dict[str, PlanPricing] = {
    STARTER: PlanPricing(
        key=STARTER,
        label="Starter",
        price_monthly=29,
        ai_daily_limit=10,
        featured_slots=0,
        perks=("Basic listing", "Dashboard access", "Limited AI (daily)"),
    ),
    GROWTH: PlanPricing(
        key=GROWTH,
        label="Growth",
        price_monthly=59,
        ai_daily_limit=50,
        featured_slots=3,
        perks=("More visibility", "More AI (daily)", "Featured slots"),
    ),
    PRO: PlanPricing(
        key=PRO,
        label="Pro",
        price_monthly=99,
        ai_daily_limit=200,
        featured_slots=6,
        perks=("Maximum visibility", "Max AI (daily)", "More featured slots"),
    ),
}

SUBSCRIPTION_PLANS = tuple(p.value for p in SubscriptionPlan)

PLAN_LABEL = {
    SubscriptionPlan.FREE.value: "Free",
    SubscriptionPlan.STARTER.value: "Starter",
    SubscriptionPlan.GROWTH.value: "Growth",
    SubscriptionPlan.PRO.value: "Pro",
}

PLAN_RANK = {
    SubscriptionPlan.PRO.value: 0,
    SubscriptionPlan.GROWTH.value: 1,
    SubscriptionPlan.STARTER.value: 2,
    SubscriptionPlan.FREE.value: 3,
}


def plan_rank(plan: Any) -> int:
    """Sort key for listings: paying plans first, unknown plans last."""
    return PLAN_RANK.get(str(plan or "").strip().lower(), len(PLAN_RANK))
