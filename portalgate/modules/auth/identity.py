"""
Bearer identity resolution.

Shapes the call to the identity provider; the injected TokenValidator
does the actual verification.
"""

import logging
from typing import Optional

from .interfaces import TokenValidator

logger = logging.getLogger(__name__)


class BearerIdentityResolver:
    """Turns an ``Authorization: Bearer ...`` header into a user id, or None."""

    def __init__(self, token_validator: TokenValidator, user_id_claim: str = "sub"):
        self.token_validator = token_validator
        self.user_id_claim = user_id_claim

    @staticmethod
    def extract_bearer(authorization: Optional[str]) -> Optional[str]:
        """Return the token of a Bearer header, None for any other scheme."""
        if not authorization or not authorization.startswith("Bearer "):
            return None
        token = authorization[7:].strip()
        return token or None

    async def resolve(self, authorization: Optional[str]) -> Optional[str]:
        token = self.extract_bearer(authorization)
        if token is None:
            return None

        try:
            is_valid, claims = await self.token_validator.validate_jwt_async(token)
        except Exception as e:
            logger.warning(f"Identity provider call failed: {e}")
            return None

        if not is_valid or not claims:
            return None

        user_id = claims.get(self.user_id_claim)
        if not isinstance(user_id, str) or not user_id:
            logger.debug(f"Validated token carries no usable '{self.user_id_claim}' claim")
            return None
        return user_id
