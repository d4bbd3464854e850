"""
OAuth authorization code flow against a single configured provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    pass


@dataclass
class OAuthIdentity:
    email: str
    full_name: Optional[str] = None
    provider: str = "oauth"


@dataclass
class OAuthClient:
    client_id: Optional[str]
    client_secret: Optional[str]
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str, provider: str) -> OAuthIdentity:
        """Trades an authorization code for the signed-in user's identity."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                token_resp = client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": redirect_uri,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    headers={"Accept": "application/json"},
                )
                token_resp.raise_for_status()
                access_token = token_resp.json().get("access_token")
                if not access_token:
                    raise OAuthError("Provider returned no access token")

                info_resp = client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                info_resp.raise_for_status()
                info = info_resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("OAuth exchange with %s failed: %s", provider, e)
            raise OAuthError(str(e)) from e

        email = str(info.get("email") or "").strip().lower()
        if not email:
            raise OAuthError("Provider returned no email")
        return OAuthIdentity(
            email=email,
            full_name=info.get("name") or info.get("full_name"),
            provider=provider,
        )
