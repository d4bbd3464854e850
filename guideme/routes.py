"""
HTTP routes for the public Guide Me ABC API.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from assistant import answers
from assistant.gemini import GeminiInvalidResponseException
from guideme import directory
from guideme.config import get_settings
from guideme.db import (
    AiQuestionRecord,
    ClickEventRecord,
    DbClient,
    DbError,
    UserRecord,
)
from guideme.dependencies import get_db_client, get_storage_client
from guideme.guards import ensure_owner_or_admin, optional_user, require_user
from guideme.platform_settings import load_settings
from guideme.schemas import (
    AskRequest,
    AskResponse,
    CategoriesResponse,
    ClickStatsResponse,
    ContactRequest,
    CreateBusinessRequest,
    ListingWrite,
    MediaUploadResponse,
    SearchResponse,
    TrackClickRequest,
)
from guideme.storage import MEDIA_CONTENT_TYPES, StorageClient, media_path
from shared.plans import get_capabilities, normalize_plan
from shared.slug import generate_unique_slug
from shared.types import ClickEventType, ListingStatus, SubscriptionPlan, parse_island

logger = logging.getLogger(__name__)

router = APIRouter()

PREMIUM_PLANS = {"premium", "growth", "pro"}
MIN_SEARCH_LENGTH = 2


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _listing_values(body: Any) -> dict:
    """Validates an owner-supplied listing payload."""
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid request")
    try:
        data = ListingWrite.model_validate(body)
    except ValidationError as e:
        errors = e.errors()
        unknown = sorted(
            str(err["loc"][0]) for err in errors if err["type"] == "extra_forbidden"
        )
        if unknown:
            raise HTTPException(
                status_code=400, detail=f"Unknown fields: {', '.join(unknown)}"
            )
        invalid = sorted({str(err["loc"][0]) for err in errors if err["loc"]})
        raise HTTPException(
            status_code=400, detail=f"Invalid fields: {', '.join(invalid)}"
        )
    values = data.model_dump(exclude_unset=True, exclude={"user_id"})
    if "business_name" in values and not (values["business_name"] or "").strip():
        raise HTTPException(status_code=400, detail="business_name is required")
    if "island" in values and values["island"] is not None:
        island = parse_island(values["island"])
        if not island:
            raise HTTPException(status_code=400, detail="Invalid island")
        values["island"] = island.value
    return values


def _get_listing_or_404(db: DbClient, listing_id: str):
    listing = db.get_listing(listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


@router.get("/categories", response_model=CategoriesResponse)
def list_categories(db: DbClient = Depends(get_db_client)):
    return CategoriesResponse(
        data=[{"id": c.id, "name": c.name} for c in db.list_categories()]
    )


@router.get("/listings")
def list_my_listings(
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    return {"data": [l.as_dict() for l in db.list_listings_for_user(user.id)]}


@router.post("/listings", status_code=201)
async def create_listing(
    request: Request,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    values = _listing_values(await _read_json(request))
    if not str(values.get("business_name") or "").strip():
        raise HTTPException(status_code=400, detail="business_name is required")
    listing = db.create_listing(user.id, values)
    logger.info("Listing %s created by %s", listing.id, user.id)
    return {"ok": True, "data": listing.as_dict()}


@router.post("/businesses", status_code=201)
def create_business(
    payload: CreateBusinessRequest,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    """One business per owner for now, with a pending starter listing beside it."""
    existing = db.list_businesses_for_user(user.id)
    if existing:
        return JSONResponse(
            {"ok": True, "created": False, "businessId": existing[0].id},
            status_code=200,
        )

    name = payload.name.strip()
    island = parse_island(payload.island)
    category_id = payload.category_id.strip()
    if len(name) < 2:
        raise HTTPException(status_code=400, detail="Business name is too short")
    if not island:
        raise HTTPException(status_code=400, detail="Invalid island")
    if category_id not in directory.category_names(db):
        raise HTTPException(status_code=400, detail="Invalid category")

    plan = SubscriptionPlan.STARTER.value
    business = db.create_business(
        user.id,
        name,
        generate_unique_slug(name, db.business_slug_exists),
        island=island.value,
        plan=plan,
    )
    listing = db.create_listing(
        user.id,
        {
            "business_id": business.id,
            "business_name": name,
            "island": island.value,
            "category_id": category_id,
            "status": ListingStatus.PENDING.value,
            "subscription_plan": plan,
        },
    )
    logger.info("Business %s (%s) created by %s", business.id, business.slug, user.id)
    return {
        "ok": True,
        "created": True,
        "businessId": business.id,
        "listingId": listing.id,
        "slug": business.slug,
    }


@router.get("/listings/{listing_id}")
def get_listing(listing_id: str, db: DbClient = Depends(get_db_client)):
    return _get_listing_or_404(db, listing_id).as_dict()


@router.patch("/listings/{listing_id}")
async def update_listing(
    listing_id: str,
    request: Request,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    values = _listing_values(await _read_json(request))
    listing = db.update_listing(listing_id, values, user_id=user.id)
    return {"ok": True, "data": listing.as_dict() if listing else None}


@router.delete("/listings/{listing_id}")
def delete_listing(
    listing_id: str,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    db.delete_listing(listing_id, user_id=user.id)
    return {"ok": True}


@router.get(
    "/listings/{listing_id}/media-upload-url", response_model=MediaUploadResponse
)
def media_upload_url(
    listing_id: str,
    kind: str = Query("logo", pattern="^(logo|cover)$"),
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    listing = _get_listing_or_404(db, listing_id)
    ensure_owner_or_admin(user, listing)
    path = media_path(listing.id, kind)
    content_type = MEDIA_CONTENT_TYPES[kind]
    return MediaUploadResponse(
        url=storage.presign_put(path, content_type=content_type, expires_in=900),
        public_url=storage.public_url(path),
        content_type=content_type,
    )


@router.get("/listings/{listing_id}/capabilities")
def listing_capabilities(listing_id: str, db: DbClient = Depends(get_db_client)):
    listing = _get_listing_or_404(db, listing_id)
    plan = directory.listing_plan(db, listing)
    return {
        "plan": plan,
        "tier": normalize_plan(plan),
        "capabilities": get_capabilities(plan).as_dict(),
    }


@router.get("/listings/{listing_id}/click-stats", response_model=ClickStatsResponse)
def listing_click_stats(
    listing_id: str,
    days: int = Query(30, ge=1, le=365),
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    listing = _get_listing_or_404(db, listing_id)
    ensure_owner_or_admin(user, listing)
    return ClickStatsResponse(days=days, stats=directory.click_stats(db, listing, days))


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = Query(""),
    island: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=50),
    db: DbClient = Depends(get_db_client),
):
    if len(q.strip()) < MIN_SEARCH_LENGTH:
        return SearchResponse(data=[])
    parsed = parse_island(island)
    hits = db.search_listings(q, island=parsed.value if parsed else None, limit=limit)
    return SearchResponse(
        data=[
            {
                "id": h.id,
                "business_name": h.business_name,
                "island": h.island,
                "description": h.description,
                "logo_url": h.logo_url,
            }
            for h in hits
        ]
    )


@router.post("/contact")
async def contact(request: Request):
    try:
        data = ContactRequest.model_validate(await _read_json(request))
    except ValidationError:
        return JSONResponse({"ok": False, "error": "Invalid request"}, status_code=400)

    logger.info(
        "Contact message lang=%s name=%s email=%s subject=%s length=%d",
        data.lang,
        data.name,
        data.email,
        data.subject,
        len(data.message),
    )
    return {"ok": True}


@router.post("/track/click")
async def track_click(
    request: Request,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    body = await _read_json(request)
    try:
        data = TrackClickRequest.model_validate(body or {})
    except ValidationError:
        data = TrackClickRequest()
    if not data.businessId or not data.eventType:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if data.eventType not in {e.value for e in ClickEventType}:
        raise HTTPException(status_code=400, detail="Invalid eventType")

    event = ClickEventRecord(
        business_id=data.businessId,
        event_type=data.eventType,
        path=data.path,
        lang=data.lang,
        island=data.island,
        user_id=user.id if user else None,
        session_id=request.headers.get("x-session-id"),
        user_agent=request.headers.get("user-agent"),
    )
    try:
        db.insert_click_event(event)
    except DbError:
        # Tracking never blocks the visitor.
        logger.exception("Click event insert failed: %s", event.as_dict())
    return {"ok": True}


@router.post("/ai/ask", response_model=AskResponse)
def ask_ai(
    payload: AskRequest,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    question = payload.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required")

    profile = db.get_profile(user.id)
    if not profile:
        raise HTTPException(status_code=400, detail="Profile missing")

    today = date.today().isoformat()
    used_today = profile.ai_used_today or 0
    if profile.ai_last_reset != today:
        used_today = 0

    platform = load_settings(db)
    quota = (
        int(platform["ai_max_free"])
        if profile.ai_daily_quota is None
        else profile.ai_daily_quota
    )
    is_premium = (profile.plan or "").lower() in PREMIUM_PLANS
    if is_premium:
        quota = max(quota, int(platform["ai_max_premium"]))

    if used_today >= quota:
        message = (
            "You have reached your AI limit for today."
            if is_premium
            else "You have reached your free AI limit for today. Upgrade for more questions."
        )
        return JSONResponse(
            {"error": "quota_exceeded", "message": message}, status_code=429
        )

    settings = get_settings()
    try:
        answer = answers.generate_guide_answer(
            question,
            payload.island,
            payload.lang,
            profile.plan,
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            temperature=float(platform["ai_temperature"]),
        )
    except GeminiInvalidResponseException:
        logger.warning("Empty Gemini answer for user %s", user.id)
        raise HTTPException(status_code=502, detail="Assistant unavailable")

    db.upsert_profile(user.id, ai_used_today=used_today + 1, ai_last_reset=today)
    db.insert_ai_question(
        AiQuestionRecord(
            user_id=user.id,
            question=question,
            answer=answer,
            island=payload.island,
            plan_at_time=profile.plan,
        )
    )
    return AskResponse(answer=answer, plan=profile.plan)
