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

from enum import Enum


class Island(str, Enum):
    ARUBA = "aruba"
    BONAIRE = "bonaire"
    CURACAO = "curacao"


ISLAND_LABELS = {
    Island.ARUBA: "Aruba",
    Island.BONAIRE: "Bonaire",
    Island.CURACAO: "Curaçao",
}


def parse_island(value) -> Island | None:
    """Returns the Island for a slug, or None when it is not one of the ABC islands."""
    try:
        return Island(str(value or "").strip().lower())
    except ValueError:
        return None


class ListingStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class SubscriptionPlan(str, Enum):
    FREE = "free"
    STARTER = "starter"
    GROWTH = "growth"
    PRO = "pro"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ClickEventType(str, Enum):
    WHATSAPP = "whatsapp"
    ROUTE = "route"
    CALL = "call"
    WEBSITE = "website"
    EMAIL = "email"


class AuditAction(str, Enum):
    DELETE = "delete"
    UNDO_DELETE = "undo_delete"
    SET_STATUS = "set_status"
    SET_PLAN = "set_plan"
    SET_VERIFIED = "set_verified"
