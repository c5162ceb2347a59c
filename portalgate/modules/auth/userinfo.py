"""
Userinfo Token Validator implementing TokenValidator interface.

Delegates verification to the identity provider: the bearer token is
forwarded to its userinfo endpoint and the returned user document is
treated as the claims.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .interfaces import TokenValidator
from ...config.provider import IdentityConfig

logger = logging.getLogger(__name__)


class UserInfoValidator(TokenValidator):
    """Validates bearer tokens by asking the identity provider who they belong to."""

    def __init__(self, config: IdentityConfig, http_client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 5.0):
        """
        Initialize with injected config and an optional shared HTTP client.

        Args:
            config: Identity provider configuration object
            http_client: Client to reuse; one is created per call otherwise
            timeout: Request timeout in seconds
        """
        self.config = config
        self.userinfo_url = config.userinfo_url
        self.http_client = http_client
        self.timeout = timeout

    def _headers(self, token: str) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {token}"}
        if self.config.userinfo_api_key:
            headers["apikey"] = self.config.userinfo_api_key
        return headers

    async def _fetch(self, token: str) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.get(self.userinfo_url, headers=self._headers(token),
                                              timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.userinfo_url, headers=self._headers(token))

    async def validate_jwt_async(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Validate a bearer token against the userinfo endpoint.

        Args:
            token: Token string (with or without Bearer prefix)

        Returns:
            Tuple of (is_valid, user document or None)
        """
        if token.startswith("Bearer "):
            token = token[7:]
        if not token or not self.config.uses_userinfo:
            return False, None

        try:
            response = await self._fetch(token)
        except httpx.HTTPError as e:
            logger.warning(f"Userinfo request failed: {e}")
            return False, None

        if response.status_code != 200:
            logger.debug(f"Userinfo rejected token with status {response.status_code}")
            return False, None

        try:
            user = response.json()
        except ValueError:
            logger.warning("Userinfo endpoint returned a non-JSON body")
            return False, None

        if not isinstance(user, dict):
            return False, None

        # Supabase-style providers return "id" rather than "sub"
        if "sub" not in user and "id" in user:
            user = {**user, "sub": user["id"]}

        return True, user
