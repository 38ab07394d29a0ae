"""
Google sign-in (OAuth 2.0 authorization code flow).

Only the pieces the portal needs: the consent URL, the code exchange and the
OpenID userinfo lookup. Google profiles are mapped to portal users in
``quiz.user_manager``.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from quiz.config import (
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
    GOOGLE_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

AUTHORIZE_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v3/userinfo"

SCOPES = ("openid", "email", "profile")


class GoogleAuthError(Exception):
    """Google rejected the request or could not be reached."""


def get_google_login_url(state: Optional[str] = None) -> str:
    query = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "prompt": "select_account",
    }
    if state:
        query["state"] = state
    return f"{AUTHORIZE_ENDPOINT}?{urlencode(query)}"


async def _call_google(method: str, url: str, step: str, **kwargs) -> Dict[str, Any]:
    try:
        async with httpx.AsyncClient(timeout=GOOGLE_TIMEOUT_SECONDS) as client:
            response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.warning("Google %s request failed: %s", step, e)
        raise GoogleAuthError(f"Google {step} unavailable") from e

    if response.is_error:
        logger.warning("Google %s rejected: %s %s", step, response.status_code, response.text)
        raise GoogleAuthError(f"Google {step} error: {response.text}")

    return response.json()


async def exchange_code_for_token(code: str) -> Dict[str, Any]:
    data = await _call_google(
        "POST",
        TOKEN_ENDPOINT,
        "token",
        data={
            "client_id": GOOGLE_CLIENT_ID,
            "client_secret": GOOGLE_CLIENT_SECRET,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": GOOGLE_REDIRECT_URI,
        },
    )
    if "access_token" not in data:
        raise GoogleAuthError("Google token response has no access_token")
    return data


async def get_google_user_info(access_token: str) -> Dict[str, Any]:
    profile = await _call_google(
        "GET",
        USERINFO_ENDPOINT,
        "user info",
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if not profile.get("sub"):
        raise GoogleAuthError("Google profile has no subject id")
    return profile
