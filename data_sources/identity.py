"""
Bearer token verification against the Supabase auth service
"""

from typing import Any, Dict, Optional

import requests

from config import Settings
from logging_config import get_logger
from .error_handling import AuthenticationFailed

logger = get_logger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


class SupabaseTokenVerifier:
    """Resolves an access token to a user by asking Supabase's /auth/v1/user."""

    def __init__(self, supabase_url: Optional[str], anon_key: Optional[str],
                 session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.supabase_url = (supabase_url or "").rstrip("/")
        self.anon_key = anon_key or ""
        self.session = session or requests.Session()
        self.timeout = timeout
        if not self.supabase_url or not self.anon_key:
            logger.warning("Supabase credentials not configured. Authentication will fail.")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseTokenVerifier":
        return cls(settings.supabase_url, settings.supabase_anon_key)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Return the authenticated user record for token.

        Raises:
            AuthenticationFailed: token rejected, or the identity service
                is unconfigured or unreachable
        """
        if not self.supabase_url or not self.anon_key:
            raise AuthenticationFailed("Authentication failed")

        try:
            resp = self.session.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Authentication error: {e}")
            raise AuthenticationFailed("Authentication failed") from e

        if resp.status_code != 200:
            raise AuthenticationFailed("Invalid or expired token")

        try:
            user = resp.json()
        except ValueError as e:
            raise AuthenticationFailed("Authentication failed") from e
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthenticationFailed("Invalid or expired token")
        return user
