"""
Google OAuth 2.0 sign-in (authorization code flow) over httpx.

1. build_authorization_url -> redirect the browser to Google's consent page.
2. Google redirects back with ?code&state; exchange_code swaps the code for tokens.
3. fetch_profile reads the OpenID userinfo; user_service links or creates the account.
"""
import logging
import os
from typing import Optional, Dict, Any
from urllib.parse import urlencode

import httpx

from errors import ServiceUnavailableError, UpstreamError, AuthenticationError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


class GoogleOAuthService:

    @property
    def client_id(self) -> Optional[str]:
        return os.getenv("GOOGLE_CLIENT_ID")

    @property
    def client_secret(self) -> Optional[str]:
        return os.getenv("GOOGLE_CLIENT_SECRET")

    @property
    def callback_url(self) -> str:
        return os.getenv("GOOGLE_CALLBACK_URL", "http://localhost:8001/api/v1/auth/google/callback")

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def build_authorization_url(self, state: str) -> str:
        if not self.is_configured():
            raise ServiceUnavailableError("Google OAuth is not configured")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.callback_url,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Google token exchange failed: {e}")
            raise UpstreamError("Google sign-in failed")

        if response.status_code != 200:
            logger.error(f"Google token endpoint {response.status_code}: {response.text}")
            raise AuthenticationError("Google sign-in failed")
        return response.json()

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Google userinfo request failed: {e}")
            raise UpstreamError("Google sign-in failed")

        if response.status_code != 200:
            logger.error(f"Google userinfo {response.status_code}: {response.text}")
            raise AuthenticationError("Google sign-in failed")

        profile = response.json()
        if not profile.get("sub") or not profile.get("email"):
            raise AuthenticationError("Google account has no email")
        if profile.get("email_verified") is False:
            raise AuthenticationError("Google email is not verified")
        return profile


google_oauth_service = GoogleOAuthService()
