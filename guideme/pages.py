"""
Server-rendered pages for visitors, business owners and the admin tooling.

Every page lives under a locale prefix (`/en/...`, `/nl/...`). The
`LocaleGateMiddleware` already redirects anonymous or under-privileged
visitors away from protected sections; the handlers here check again so a
page never renders for the wrong user when the middleware is bypassed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from guideme import directory
from guideme.admin_routes import businesses_with_subscriptions, user_rows
from guideme.config import get_settings
from guideme.db import DbClient, UserRecord
from guideme.dependencies import get_db_client, get_oauth_client
from guideme.guards import SESSION_MFA_PENDING_KEY, optional_user
from guideme.oauth import OAuthClient
from guideme.platform_settings import SETTING_DEFAULTS, load_settings
from shared import roles
from shared.locale_path import LOCALES, is_locale, lang_href, replace_lang_in_path
from shared.opening_hours import get_opening_lines
from shared.plans import PLAN_LABEL, PLAN_ORDER, PLANS, get_capabilities, normalize_plan
from shared.translations import t
from shared.types import ISLAND_LABELS, Island, ListingStatus, SubscriptionPlan, parse_island

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    lang_href=lang_href,
    replace_lang_in_path=replace_lang_in_path,
    locales=LOCALES,
    islands=[(i.value, ISLAND_LABELS[i]) for i in Island],
    plan_label=lambda plan: PLAN_LABEL.get(plan or "", plan or ""),
)

router = APIRouter()

HOME_FEATURED = 6


def _lang_or_404(lang: str) -> str:
    if not is_locale(lang):
        raise HTTPException(status_code=404, detail="Not found")
    return lang


def _render(
    request: Request,
    name: str,
    lang: str,
    user: Optional[UserRecord] = None,
    status_code: int = 200,
    **context,
) -> HTMLResponse:
    context.update(
        lang=lang,
        t=t(lang),
        user=user,
        role_flags=roles.get_role_flags(user),
        path=request.url.path,
        api=get_settings().api_prefix,
    )
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def _not_found(request: Request, lang: str, user: Optional[UserRecord]) -> HTMLResponse:
    return _render(request, "not_found.html", lang, user, status_code=404)


def _login_redirect(request: Request, lang: str) -> RedirectResponse:
    params = urlencode({"redirectedFrom": request.url.path})
    return RedirectResponse(
        f"{lang_href(lang, '/business/auth')}?{params}", status_code=303
    )


def _forbidden_redirect(lang: str, scope: str) -> RedirectResponse:
    return RedirectResponse(f"/{lang}?forbidden={scope}", status_code=303)


# Public pages


@router.get("/{lang}", response_class=HTMLResponse)
def home(
    request: Request,
    lang: str,
    forbidden: Optional[str] = Query(None),
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    featured = directory.ranked_listings(db)[:HOME_FEATURED]
    return _render(
        request, "home.html", lang, user, featured=featured, forbidden=forbidden
    )


@router.get("/{lang}/islands", response_class=HTMLResponse)
def islands_overview(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
):
    lang = _lang_or_404(lang)
    return _render(request, "islands.html", lang, user)


@router.get("/{lang}/islands/{island}", response_class=HTMLResponse)
def island_page(
    request: Request,
    lang: str,
    island: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    parsed = parse_island(island)
    if not parsed:
        return _not_found(request, lang, user)
    return _render(
        request,
        "island.html",
        lang,
        user,
        island=parsed.value,
        island_label=ISLAND_LABELS[parsed],
        categories=db.list_categories(),
        category=None,
        listings=directory.ranked_listings(db, island=parsed.value),
    )


@router.get("/{lang}/islands/{island}/{category}", response_class=HTMLResponse)
def island_category_page(
    request: Request,
    lang: str,
    island: str,
    category: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    parsed = parse_island(island)
    found = db.get_category_by_slug(category.strip().lower())
    if not parsed or not found:
        return _not_found(request, lang, user)
    return _render(
        request,
        "island.html",
        lang,
        user,
        island=parsed.value,
        island_label=ISLAND_LABELS[parsed],
        categories=db.list_categories(),
        category=found,
        listings=directory.ranked_listings(
            db, island=parsed.value, category_id=found.id
        ),
    )


@router.get("/{lang}/businesses", response_class=HTMLResponse)
def businesses_page(
    request: Request,
    lang: str,
    island: Optional[str] = Query(None),
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    parsed = parse_island(island)
    selected = parsed.value if parsed else None
    return _render(
        request,
        "businesses.html",
        lang,
        user,
        selected_island=selected,
        listings=directory.ranked_listings(db, island=selected),
    )


@router.get("/{lang}/biz/{listing_id}", response_class=HTMLResponse)
def mini_site(
    request: Request,
    lang: str,
    listing_id: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    listing = db.get_listing(listing_id)
    if (
        not listing
        or listing.deleted_at
        or listing.status != ListingStatus.ACTIVE.value
    ):
        return _not_found(request, lang, user)
    view = directory.listing_view(db, listing, directory.category_names(db))
    if view.plan != SubscriptionPlan.PRO.value:
        return _not_found(request, lang, user)

    island = parse_island(listing.island)
    return _render(
        request,
        "mini_site.html",
        lang,
        user,
        view=view,
        listing=listing,
        island_label=ISLAND_LABELS[island] if island else listing.island,
        opening_lines=get_opening_lines(listing.opening_hours, lang),
        tracking_id=listing.business_id or listing.id,
    )


@router.get("/{lang}/search", response_class=HTMLResponse)
def search_page(
    request: Request,
    lang: str,
    q: str = Query(""),
    island: Optional[str] = Query(None),
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    query = q.strip()
    parsed = parse_island(island)
    hits = []
    if len(query) >= 2:
        hits = db.search_listings(query, island=parsed.value if parsed else None)
    return _render(
        request,
        "search.html",
        lang,
        user,
        q=query,
        selected_island=parsed.value if parsed else None,
        hits=hits,
    )


@router.get("/{lang}/pricing", response_class=HTMLResponse)
def pricing_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
):
    lang = _lang_or_404(lang)
    return _render(
        request,
        "pricing.html",
        lang,
        user,
        plans=[PLANS[key] for key in PLAN_ORDER],
    )


@router.get("/{lang}/contact", response_class=HTMLResponse)
def contact_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
):
    lang = _lang_or_404(lang)
    return _render(request, "contact.html", lang, user)


@router.get("/{lang}/maintenance", response_class=HTMLResponse)
def maintenance_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
):
    lang = _lang_or_404(lang)
    return _render(request, "maintenance.html", lang, user, status_code=503)


# Business auth


@router.get("/{lang}/business/auth", response_class=HTMLResponse)
def business_auth_page(
    request: Request,
    lang: str,
    error: Optional[str] = Query(None),
    redirectedFrom: Optional[str] = Query(None),
    user: Optional[UserRecord] = Depends(optional_user),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    lang = _lang_or_404(lang)
    if user:
        return RedirectResponse(
            lang_href(lang, "/business/dashboard"), status_code=303
        )
    return _render(
        request,
        "business_auth.html",
        lang,
        user,
        error=error,
        redirected_from=redirectedFrom,
        oauth_enabled=oauth.configured,
    )


@router.get("/{lang}/business/auth/mfa", response_class=HTMLResponse)
def mfa_challenge_page(request: Request, lang: str):
    lang = _lang_or_404(lang)
    if not request.session.get(SESSION_MFA_PENDING_KEY):
        return RedirectResponse(lang_href(lang, "/business/auth"), status_code=303)
    return _render(request, "mfa.html", lang)


# Owner pages


@router.get("/{lang}/business", response_class=HTMLResponse)
def business_home(lang: str):
    lang = _lang_or_404(lang)
    return RedirectResponse(lang_href(lang, "/business/dashboard"), status_code=303)


@router.get("/{lang}/business/dashboard", response_class=HTMLResponse)
def dashboard_page(
    request: Request,
    lang: str,
    checkout: Optional[str] = Query(None),
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    if not user:
        return _login_redirect(request, lang)

    categories = directory.category_names(db)
    rows = []
    for listing in db.list_listings_for_user(user.id):
        if listing.deleted_at:
            continue
        view = directory.listing_view(db, listing, categories)
        rows.append(
            {
                "view": view,
                "tier": normalize_plan(view.plan),
                "capabilities": get_capabilities(view.plan).as_dict(),
                "stats": directory.click_stats(db, listing, 30),
            }
        )
    return _render(
        request,
        "dashboard.html",
        lang,
        user,
        rows=rows,
        plan_order=PLAN_ORDER,
        checkout=checkout,
        has_business=bool(db.list_businesses_for_user(user.id)),
        categories=db.list_categories(),
    )


@router.get("/{lang}/account/security", response_class=HTMLResponse)
def account_security_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    if not user:
        return _login_redirect(request, lang)
    profile = db.get_profile(user.id)
    return _render(
        request,
        "account_security.html",
        lang,
        user,
        mfa_enabled=bool(profile and profile.is_mfa_enabled),
    )


# Admin and godmode


@router.get("/{lang}/admin/businesses", response_class=HTMLResponse)
def admin_businesses_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    if not user:
        return _login_redirect(request, lang)
    if not roles.is_admin(user):
        return _forbidden_redirect(lang, "admin")
    return _render(
        request,
        "admin_businesses.html",
        lang,
        user,
        businesses=businesses_with_subscriptions(db, default=None),
        listings=[
            directory.listing_view(db, listing)
            for status in ListingStatus
            for listing in db.list_public_listings(status=status.value)
        ],
    )


def _super_admin_or_redirect(request: Request, lang: str, user: Optional[UserRecord]):
    if not user:
        return _login_redirect(request, lang)
    if not roles.is_super_admin(user):
        return _forbidden_redirect(lang, "super")
    return None


@router.get("/{lang}/godmode", response_class=HTMLResponse)
def godmode_home(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    redirect = _super_admin_or_redirect(request, lang, user)
    if redirect:
        return redirect
    return _render(
        request,
        "godmode.html",
        lang,
        user,
        user_count=len(user_rows(db)),
        business_count=len(db.list_businesses()),
        audit=db.list_audit(limit=20),
    )


@router.get("/{lang}/godmode/users", response_class=HTMLResponse)
def godmode_users_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    redirect = _super_admin_or_redirect(request, lang, user)
    if redirect:
        return redirect
    return _render(request, "godmode_users.html", lang, user, users=user_rows(db))


@router.get("/{lang}/godmode/settings", response_class=HTMLResponse)
def godmode_settings_page(
    request: Request,
    lang: str,
    user: Optional[UserRecord] = Depends(optional_user),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang_or_404(lang)
    redirect = _super_admin_or_redirect(request, lang, user)
    if redirect:
        return redirect
    current = load_settings(db)
    fields = [
        {
            "key": key,
            "value": current[key],
            "kind": "bool" if isinstance(default, bool) else "number",
        }
        for key, default in SETTING_DEFAULTS.items()
    ]
    return _render(request, "godmode_settings.html", lang, user, fields=fields)
