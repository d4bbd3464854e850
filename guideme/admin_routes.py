"""
HTTP routes for the admin and godmode tooling.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from guideme import directory
from guideme.db import AuditRecord, DbClient, DbError, ListingRecord, UserRecord
from guideme.dependencies import get_db_client
from guideme.guards import require_admin_token, require_super_admin
from guideme.platform_settings import load_settings, validate_settings
from guideme.schemas import (
    ListingPlanRequest,
    ListingRefRequest,
    ListingStatusRequest,
    ListingVerifiedRequest,
    SubscriptionOverrideRequest,
    ToggleBlockedRequest,
    ToggleRoleRequest,
)
from shared import roles
from shared.plans import PLAN_ORDER, SUBSCRIPTION_PLANS
from shared.types import (
    AuditAction,
    ListingStatus,
    SubscriptionPlan,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter()

USERS_PER_PAGE = 200
MAX_USER_PAGES = 50
SUBSCRIPTION_STATUSES = tuple(s.value for s in SubscriptionStatus)
LISTING_STATUSES = tuple(s.value for s in ListingStatus)
DEFAULT_OVERRIDE_PLAN = SubscriptionPlan.FREE.value
DEFAULT_OVERRIDE_STATUS = SubscriptionStatus.INACTIVE.value


def _validate_override(payload: SubscriptionOverrideRequest) -> tuple[str, str, str]:
    business_id = (payload.businessId or "").strip()
    plan = (payload.plan or DEFAULT_OVERRIDE_PLAN).strip().lower()
    status = (payload.status or DEFAULT_OVERRIDE_STATUS).strip().lower()
    if not business_id:
        raise HTTPException(status_code=400, detail="Missing businessId")
    if plan not in SUBSCRIPTION_PLANS:
        raise HTTPException(status_code=400, detail="Invalid plan")
    if status not in SUBSCRIPTION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    return business_id, plan, status


def businesses_with_subscriptions(db: DbClient, default: Optional[dict]) -> list[dict]:
    businesses = db.list_businesses()
    subscriptions = {
        s.business_id: s for s in db.list_subscriptions(b.id for b in businesses)
    }
    out = []
    for business in businesses:
        subscription = subscriptions.get(business.id)
        out.append(
            {
                "id": business.id,
                "name": business.name,
                "island": business.island,
                "user_id": business.user_id,
                "slug": business.slug,
                "created_at": business.created_at,
                "deleted_at": business.deleted_at,
                "subscription": (
                    {"plan": subscription.plan, "status": subscription.status}
                    if subscription
                    else default
                ),
            }
        )
    return out


@router.get("/admin/businesses")
def admin_list_businesses(
    _: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    return {"businesses": businesses_with_subscriptions(db, default=None)}


@router.post("/admin/businesses/subscription")
def admin_set_subscription(
    payload: SubscriptionOverrideRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    business_id, plan, status = _validate_override(payload)
    if not db.get_business(business_id):
        raise HTTPException(status_code=400, detail="Unknown businessId")
    db.upsert_subscription(business_id, plan=plan, status=status)
    logger.info("Subscription of %s set to %s/%s by %s", business_id, plan, status, user.id)
    return {"ok": True}


@router.get(
    "/admin/businesses/set-subscription", dependencies=[Depends(require_admin_token)]
)
def token_list_businesses(db: DbClient = Depends(get_db_client)):
    default = {"plan": DEFAULT_OVERRIDE_PLAN, "status": DEFAULT_OVERRIDE_STATUS}
    return {"ok": True, "businesses": businesses_with_subscriptions(db, default=default)}


@router.post(
    "/admin/businesses/update-subscription",
    dependencies=[Depends(require_admin_token)],
)
def token_update_subscription(
    payload: SubscriptionOverrideRequest, db: DbClient = Depends(get_db_client)
):
    business_id, plan, status = _validate_override(payload)
    db.upsert_subscription(business_id, plan=plan, status=status)
    logger.info("Subscription of %s set to %s/%s via admin token", business_id, plan, status)
    return {"ok": True}


# Listing moderation


def _resolve_or_404(db: DbClient, ref: str) -> ListingRecord:
    listing = db.resolve_listing(ref.strip())
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


def _apply(
    db: DbClient, listing: ListingRecord, values: dict, live_only: bool = False
) -> None:
    """Moderation acts on every listing of the business when one is linked.

    With live_only, soft-deleted listings are left untouched.
    """
    if listing.business_id:
        db.update_listings_for_business(listing.business_id, values, live_only=live_only)
    elif not (live_only and listing.deleted_at is not None):
        db.update_listing(listing.id, values)


def _audit(
    db: DbClient,
    listing: ListingRecord,
    actor: UserRecord,
    action: AuditAction,
    detail: dict,
) -> None:
    record = AuditRecord(
        business_id=listing.business_id or listing.id,
        actor_user_id=actor.id,
        action=action.value,
        detail={"listing_id": listing.id, **detail},
    )
    try:
        db.insert_audit(record)
    except DbError:
        logger.warning("Audit write failed for %s", record.as_dict(), exc_info=True)


@router.post("/admin/listings/status")
def moderate_status(
    payload: ListingStatusRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    status = payload.status.strip().lower()
    if status not in LISTING_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    listing = _resolve_or_404(db, payload.ref)
    _apply(db, listing, {"status": status}, live_only=True)
    _audit(db, listing, user, AuditAction.SET_STATUS, {"status": status})
    return {"ok": True}


@router.post("/admin/listings/verified")
def moderate_verified(
    payload: ListingVerifiedRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    listing = _resolve_or_404(db, payload.ref)
    _apply(
        db,
        listing,
        {
            "is_verified": payload.verified,
            "verified_at": time.time() if payload.verified else None,
        },
    )
    _audit(db, listing, user, AuditAction.SET_VERIFIED, {"verified": payload.verified})
    return {"ok": True}


@router.post("/admin/listings/plan")
def moderate_plan(
    payload: ListingPlanRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    plan = payload.plan.strip().lower()
    if plan not in PLAN_ORDER:
        raise HTTPException(status_code=400, detail="Invalid plan")
    listing = _resolve_or_404(db, payload.ref)
    _apply(db, listing, {"subscription_plan": plan}, live_only=True)
    if listing.business_id:
        try:
            db.upsert_subscription(
                listing.business_id,
                plan=plan,
                status=SubscriptionStatus.ACTIVE.value,
                ends_at=None,
                paid_until=None,
            )
        except DbError:
            logger.warning(
                "Subscription sync failed for %s", listing.business_id, exc_info=True
            )
    _audit(db, listing, user, AuditAction.SET_PLAN, {"plan": plan})
    return {"ok": True}


@router.post("/admin/listings/delete")
def moderate_delete(
    payload: ListingRefRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    listing = _resolve_or_404(db, payload.ref)
    deleted_at = time.time()
    _apply(db, listing, {"deleted_at": deleted_at})
    if listing.business_id:
        db.set_business_deleted(listing.business_id, deleted_at)
    _audit(db, listing, user, AuditAction.DELETE, {})
    return {"ok": True}


@router.post("/admin/listings/undo-delete")
def moderate_undo_delete(
    payload: ListingRefRequest,
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    listing = _resolve_or_404(db, payload.ref)
    _apply(db, listing, {"deleted_at": None})
    if listing.business_id:
        db.set_business_deleted(listing.business_id, None)
    _audit(db, listing, user, AuditAction.UNDO_DELETE, {})
    return {"ok": True}


# Godmode


def _all_users(db: DbClient) -> list[UserRecord]:
    users: list[UserRecord] = []
    for page in range(1, MAX_USER_PAGES + 1):
        batch = db.list_users(page=page, per_page=USERS_PER_PAGE)
        users.extend(batch)
        if len(batch) < USERS_PER_PAGE:
            break
    return users


def user_rows(db: DbClient) -> list[dict]:
    users = _all_users(db)
    profiles = {p.id: p for p in db.get_profiles(u.id for u in users)}
    out = []
    for user in users:
        profile = profiles.get(user.id)
        name_from_auth = user.user_metadata.get("full_name") or user.user_metadata.get(
            "name"
        )
        out.append(
            {
                "id": user.id,
                "email": user.email,
                "full_name": (profile.full_name if profile else None) or name_from_auth,
                "roles": roles.get_roles(user),
                "is_blocked": bool(profile and profile.is_blocked),
                "created_at": user.created_at,
                "last_sign_in_at": user.last_sign_in_at,
                "business_name": profile.business_name if profile else None,
            }
        )
    return out


@router.get("/godmode/users")
def godmode_users(
    _: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    return {"ok": True, "users": user_rows(db)}


@router.post("/godmode/users/toggle-role")
def godmode_toggle_role(
    payload: ToggleRoleRequest,
    requester: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    role = roles.normalize_role(payload.role)
    if not payload.userId or not role:
        raise HTTPException(status_code=400, detail="Missing userId/role")
    if payload.userId == requester.id and role == roles.SUPER_ADMIN:
        raise HTTPException(
            status_code=400, detail="You cannot toggle super_admin on yourself"
        )

    target = db.get_user(payload.userId)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    next_roles = roles.toggle_role(roles.get_roles(target), role)
    db.update_user_app_metadata(target.id, {**target.app_metadata, "roles": next_roles})
    logger.info("Roles of %s set to %s by %s", target.id, next_roles, requester.id)
    return {"ok": True, "userId": target.id, "roles": next_roles}


@router.post("/godmode/users/toggle-blocked")
def godmode_toggle_blocked(
    payload: ToggleBlockedRequest,
    requester: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    if not payload.userId:
        raise HTTPException(status_code=400, detail="Missing userId")

    target = db.get_user(payload.userId)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if roles.is_super_admin(target):
        raise HTTPException(status_code=400, detail="Cannot block a super admin")

    profile = db.get_profile(target.id)
    is_blocked = not (profile.is_blocked if profile else False)
    db.upsert_profile(target.id, is_blocked=is_blocked)
    logger.info("User %s blocked=%s by %s", target.id, is_blocked, requester.id)
    return {"ok": True, "userId": target.id, "is_blocked": is_blocked}


@router.get("/godmode/settings")
def godmode_get_settings(
    _: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    rows = [{"key": key, "value": value} for key, value in db.list_settings()]
    return {"ok": True, "rows": rows, "settings": load_settings(db)}


@router.put("/godmode/settings")
def godmode_save_settings(
    payload: dict[str, Any] = Body(...),
    user: UserRecord = Depends(require_super_admin),
    db: DbClient = Depends(get_db_client),
):
    try:
        values = validate_settings(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.upsert_settings(values)
    logger.info("Platform settings %s updated by %s", sorted(values), user.id)
    return {"ok": True, "settings": load_settings(db)}


@router.post(
    "/seed/categories", status_code=201, dependencies=[Depends(require_admin_token)]
)
def seed_categories(db: DbClient = Depends(get_db_client)):
    inserted = directory.seed_default_categories(db)
    return {"ok": True, "inserted": inserted}
