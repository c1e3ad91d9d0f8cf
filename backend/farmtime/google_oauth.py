"""Google OAuth 2.0 client — consent URL, code exchange and userinfo lookup.

The HTTP client class is injectable so tests can swap in an ``httpx.Client``
backed by a mock transport.
"""
import logging
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlencode

import httpx

from farmtime.config import Settings, settings
from farmtime.errors import UpstreamError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = ("openid", "email", "profile")


@dataclass(frozen=True)
class GoogleProfile:
    id: str
    email: str
    name: str
    picture: str = ""


class GoogleOAuthClient:
    def __init__(
        self,
        config: Settings = settings,
        http_client_class: Callable[..., httpx.Client] = httpx.Client,
        timeout: float = 10.0,
    ):
        self._config = config
        self._http_client_class = http_client_class
        self._timeout = timeout

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self._config.GOOGLE_CLIENT_ID,
            "redirect_uri": self._config.GOOGLE_REDIRECT_URL,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "access_type": "offline",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> GoogleProfile:
        """Exchange an authorization code and return the account's profile."""
        with self._http_client_class(timeout=self._timeout) as client:
            try:
                token_resp = client.post(TOKEN_URL, data={
                    "code": code,
                    "client_id": self._config.GOOGLE_CLIENT_ID,
                    "client_secret": self._config.GOOGLE_CLIENT_SECRET,
                    "redirect_uri": self._config.GOOGLE_REDIRECT_URL,
                    "grant_type": "authorization_code",
                })
                token_resp.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error("Google token exchange failed: %s", exc)
                raise UpstreamError("Failed to exchange token")

            access_token = token_resp.json().get("access_token")
            if not access_token:
                logger.error("Google token response carried no access_token")
                raise UpstreamError("Failed to exchange token")

            try:
                info_resp = client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
                info_resp.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error("Google userinfo lookup failed: %s", exc)
                raise UpstreamError("Failed to get user info")

        info = info_resp.json()
        if not info.get("id") or not info.get("email"):
            raise UpstreamError("Failed to decode user info")
        return GoogleProfile(
            id=str(info["id"]),
            email=info["email"],
            name=info.get("name") or info["email"],
            picture=info.get("picture") or "",
        )


def get_google_client() -> GoogleOAuthClient:
    """FastAPI dependency; overridden in tests."""
    return GoogleOAuthClient()
