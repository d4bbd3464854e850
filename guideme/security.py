"""
Signed tokens and TOTP helpers for authentication.
"""

from __future__ import annotations

import base64
import io
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import pyotp
import qrcode

ALGORITHM = "HS256"
MFA_ISSUER = "Guide Me ABC"

MAGIC_LINK_PURPOSE = "magic_link"
ACCESS_PURPOSE = "access"


class TokenError(Exception):
    """Raised when a token is expired, tampered with or issued for something else."""


def _encode(claims: dict, secret: str, ttl_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + timedelta(seconds=ttl_seconds)}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, purpose: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e
    if payload.get("purpose") != purpose:
        raise TokenError("Invalid token")
    return payload


def create_magic_link_token(
    email: str, secret: str, ttl_seconds: int, redirect_to: Optional[str] = None
) -> str:
    claims = {"purpose": MAGIC_LINK_PURPOSE, "email": email.strip().lower()}
    if redirect_to:
        claims["redirect_to"] = redirect_to
    return _encode(claims, secret, ttl_seconds)


def verify_magic_link_token(token: str, secret: str) -> dict:
    return _decode(token, secret, MAGIC_LINK_PURPOSE)


def create_access_token(user_id: str, secret: str, ttl_seconds: int) -> str:
    return _encode({"purpose": ACCESS_PURPOSE, "sub": user_id}, secret, ttl_seconds)


def verify_access_token(token: str, secret: str) -> str:
    """Returns the user id carried by a bearer token."""
    return _decode(token, secret, ACCESS_PURPOSE)["sub"]


def new_totp_secret() -> str:
    return pyotp.random_base32()


def totp_uri(secret: str, account_name: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=MFA_ISSUER)


def verify_totp(secret: Optional[str], code: str) -> bool:
    code = (code or "").strip().replace(" ", "")
    if not secret or not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, valid_window=1)


def qr_data_url(data: str) -> str:
    qr = qrcode.make(data)
    buf = io.BytesIO()
    qr.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
