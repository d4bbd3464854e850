"""
Sign-in flows: magic links, OAuth, bearer tokens and TOTP second factor.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from guideme.config import get_settings
from guideme.db import DbClient, UserRecord
from guideme.dependencies import get_db_client, get_mailer, get_oauth_client
from guideme.guards import (
    SESSION_MFA_PENDING_KEY,
    SESSION_OAUTH_STATE_KEY,
    SESSION_USER_KEY,
    require_user,
)
from guideme.mailer import Mailer, MailerError, OutgoingEmail
from guideme.oauth import OAuthClient, OAuthError
from guideme.platform_settings import registrations_open
from guideme.schemas import MagicLinkRequest, MfaSetupResponse, MfaTokenRequest
from guideme import security
from shared.locale_path import DEFAULT_LOCALE, is_locale, lang_href

logger = logging.getLogger(__name__)

# Mounted under the API prefix.
router = APIRouter()
# Browser-facing callbacks, mounted at the site root.
callback_router = APIRouter()

SESSION_REDIRECT_KEY = "post_login_redirect"
SESSION_OAUTH_LANG_KEY = "oauth_lang"


def _lang(value: Optional[str]) -> str:
    return value if is_locale(value) else DEFAULT_LOCALE


def _safe_redirect(target: Optional[str], lang: str) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return lang_href(lang, "/business/dashboard")


def _auth_error(lang: str, code: str) -> RedirectResponse:
    return RedirectResponse(
        f"{lang_href(lang, '/business/auth')}?error={code}", status_code=303
    )


def _get_or_create_user(
    db: DbClient, email: str, full_name: Optional[str] = None
) -> Optional[UserRecord]:
    """Returns the user for an email, creating it when registrations are open."""
    user = db.get_user_by_email(email)
    if user:
        return user
    if not registrations_open(db):
        return None
    user_metadata = {"full_name": full_name} if full_name else {}
    user = db.create_user(email, user_metadata=user_metadata)
    db.upsert_profile(user.id, full_name=full_name)
    logger.info("Registered new user %s", user.id)
    return user


def _complete_sign_in(
    request: Request, db: DbClient, user: UserRecord, lang: str, target: str
) -> RedirectResponse:
    profile = db.get_profile(user.id) or db.upsert_profile(user.id)
    request.session.clear()
    if profile.is_blocked:
        logger.info("Blocked user %s tried to sign in", user.id)
        return _auth_error(lang, "blocked")

    db.touch_last_sign_in(user.id)
    if profile.is_mfa_enabled:
        request.session[SESSION_MFA_PENDING_KEY] = user.id
        request.session[SESSION_REDIRECT_KEY] = target
        return RedirectResponse(lang_href(lang, "/business/auth/mfa"), status_code=303)

    request.session[SESSION_USER_KEY] = user.id
    return RedirectResponse(target, status_code=303)


# Magic link


@router.post("/auth/magic-link")
def send_magic_link(
    payload: MagicLinkRequest,
    db: DbClient = Depends(get_db_client),
    mailer: Mailer = Depends(get_mailer),
):
    email = payload.email.strip().lower()
    if not db.get_user_by_email(email) and not registrations_open(db):
        raise HTTPException(status_code=403, detail="Registrations are closed")

    settings = get_settings()
    lang = _lang(payload.lang)
    token = security.create_magic_link_token(
        email,
        settings.jwt_secret,
        settings.magic_link_ttl_seconds,
        redirect_to=payload.redirectTo,
    )
    link = f"{settings.site_url.rstrip('/')}/auth/callback?token={token}&lang={lang}"
    message = OutgoingEmail(
        to=email,
        subject="Your Guide Me ABC sign-in link",
        body=(
            "Use the link below to sign in. It expires in "
            f"{settings.magic_link_ttl_seconds // 60} minutes.\n\n{link}\n"
        ),
    )
    try:
        mailer.send(message)
    except MailerError:
        raise HTTPException(status_code=502, detail="Could not send sign-in link")
    return {"ok": True}


@callback_router.get("/auth/callback")
def magic_link_callback(
    request: Request,
    token: str = Query(""),
    lang: str = Query(DEFAULT_LOCALE),
    db: DbClient = Depends(get_db_client),
):
    lang = _lang(lang)
    try:
        claims = security.verify_magic_link_token(token, get_settings().jwt_secret)
    except security.TokenError as e:
        logger.info("Magic link rejected: %s", e)
        return _auth_error(lang, "link_invalid")

    user = _get_or_create_user(db, claims["email"])
    if not user:
        return _auth_error(lang, "registrations_closed")
    return _complete_sign_in(
        request, db, user, lang, _safe_redirect(claims.get("redirect_to"), lang)
    )


# OAuth


def _oauth_redirect_uri() -> str:
    return f"{get_settings().site_url.rstrip('/')}/auth/oauth/callback"


@callback_router.get("/auth/oauth/callback")
def oauth_callback(
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    db: DbClient = Depends(get_db_client),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    expected_state = request.session.pop(SESSION_OAUTH_STATE_KEY, None)
    provider = request.session.pop("oauth_provider", "oauth")
    lang = _lang(request.session.pop(SESSION_OAUTH_LANG_KEY, None))
    if not expected_state or not secrets.compare_digest(
        state.encode(), expected_state.encode()
    ):
        return _auth_error(lang, "oauth_state")
    if not code:
        return _auth_error(lang, "oauth_failed")

    try:
        identity = oauth.exchange_code(code, _oauth_redirect_uri(), provider)
    except OAuthError:
        return _auth_error(lang, "oauth_failed")

    user = _get_or_create_user(db, identity.email, identity.full_name)
    if not user:
        return _auth_error(lang, "registrations_closed")
    return _complete_sign_in(request, db, user, lang, _safe_redirect(None, lang))


@callback_router.get("/auth/oauth/{provider}")
def oauth_start(
    provider: str,
    request: Request,
    lang: str = Query(DEFAULT_LOCALE),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    lang = _lang(lang)
    if not oauth.configured:
        return _auth_error(lang, "oauth_unavailable")
    state = secrets.token_urlsafe(24)
    request.session[SESSION_OAUTH_STATE_KEY] = state
    request.session["oauth_provider"] = provider
    request.session[SESSION_OAUTH_LANG_KEY] = lang
    return RedirectResponse(
        oauth.authorization_url(_oauth_redirect_uri(), state), status_code=303
    )


# Bearer tokens


@router.post("/auth/token")
def issue_access_token(user: UserRecord = Depends(require_user)):
    settings = get_settings()
    token = security.create_access_token(
        user.id, settings.jwt_secret, settings.access_token_ttl_seconds
    )
    return {
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": settings.access_token_ttl_seconds,
    }


# MFA


@router.post("/account/mfa/setup", response_model=MfaSetupResponse)
def mfa_setup(
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    profile = db.get_profile(user.id)
    if profile and profile.is_mfa_enabled:
        raise HTTPException(status_code=400, detail="MFA already enabled")
    secret = security.new_totp_secret()
    db.upsert_profile(user.id, mfa_totp_secret=secret, is_mfa_enabled=False)
    uri = security.totp_uri(secret, user.email)
    return MfaSetupResponse(otpauth_uri=uri, qr_code=security.qr_data_url(uri))


@router.post("/account/mfa/confirm")
def mfa_confirm(
    payload: MfaTokenRequest,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    profile = db.get_profile(user.id)
    if not profile or not profile.mfa_totp_secret:
        raise HTTPException(status_code=400, detail="MFA setup not started")
    if not security.verify_totp(profile.mfa_totp_secret, payload.token):
        raise HTTPException(status_code=400, detail="Invalid code")
    db.upsert_profile(user.id, is_mfa_enabled=True)
    logger.info("MFA enabled for %s", user.id)
    return {"ok": True}


@router.post("/auth/mfa/verify")
def mfa_verify(
    payload: MfaTokenRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    user_id = request.session.get(SESSION_MFA_PENDING_KEY)
    if not user_id:
        raise HTTPException(status_code=401, detail="No pending sign-in")
    profile = db.get_profile(user_id)
    if not profile or not security.verify_totp(profile.mfa_totp_secret, payload.token):
        raise HTTPException(status_code=400, detail="Invalid code")

    target = request.session.get(SESSION_REDIRECT_KEY) or _safe_redirect(None, DEFAULT_LOCALE)
    request.session.clear()
    request.session[SESSION_USER_KEY] = user_id
    return {"ok": True, "redirectTo": target}


@callback_router.post("/auth/logout")
def logout(request: Request, lang: str = Query(DEFAULT_LOCALE)):
    request.session.clear()
    return RedirectResponse(lang_href(_lang(lang), "/"), status_code=303)
