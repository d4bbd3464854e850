"""
Request-level authentication and authorization guards.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from guideme.config import get_settings
from guideme.db import DbClient, ListingRecord, UserRecord
from guideme.dependencies import get_db_client
from guideme.security import TokenError, verify_access_token
from shared import roles

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_MFA_PENDING_KEY = "mfa_pending_user_id"
SESSION_OAUTH_STATE_KEY = "oauth_state"


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_user(request: Request, db: DbClient) -> Optional[UserRecord]:
    """
    Returns the signed-in user from a bearer token or the session cookie.

    A session parked on a pending MFA challenge is not signed in, and neither
    is a user whose profile is blocked.
    """
    user_id = None
    token = _bearer_token(request)
    if token:
        try:
            user_id = verify_access_token(token, get_settings().jwt_secret)
        except TokenError as e:
            logger.info("Rejected bearer token: %s", e)
            return None
    elif "session" in request.scope:
        user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None

    user = db.get_user(user_id)
    if not user:
        return None
    profile = db.get_profile(user.id)
    if profile and profile.is_blocked:
        return None
    return user


def optional_user(
    request: Request, db: DbClient = Depends(get_db_client)
) -> Optional[UserRecord]:
    return resolve_user(request, db)


def require_user(user: Optional[UserRecord] = Depends(optional_user)) -> UserRecord:
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: UserRecord = Depends(require_user)) -> UserRecord:
    if not roles.is_admin(user):
        raise HTTPException(status_code=403, detail="Admin required")
    return user


def require_super_admin(user: UserRecord = Depends(require_user)) -> UserRecord:
    if not roles.is_super_admin(user):
        raise HTTPException(status_code=403, detail="Super admin required")
    return user


def require_admin_token(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Shared-secret guard for godmode tooling called outside a browser session."""
    expected = get_settings().godmode_token
    if not expected:
        raise HTTPException(status_code=500, detail="Admin token not configured")
    if not x_admin_token or not hmac.compare_digest(
        x_admin_token.encode(), expected.encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


def can_manage_listing(user: UserRecord, listing: ListingRecord) -> bool:
    return roles.is_admin(user) or listing.user_id == user.id


def ensure_owner_or_admin(user: UserRecord, listing: ListingRecord) -> None:
    if not can_manage_listing(user, listing):
        raise HTTPException(status_code=403, detail="Forbidden")
