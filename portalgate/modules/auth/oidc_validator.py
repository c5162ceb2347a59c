"""
Local bearer token verification against the identity provider's JWKS.

Used for reads of module data: a valid token names the viewer through the
configured user id claim, which decides owner-only and authenticated tiers.
"""

import logging
import time
from typing import Dict, Optional, Tuple, Any

import jwt
from jwt import PyJWKClient

from .interfaces import TokenValidator
from ...config.provider import IdentityConfig

logger = logging.getLogger(__name__)

# Portal sessions are signed with RSA or P-256 keys
SIGNING_ALGORITHMS = ["RS256", "ES256"]


class OIDCValidator(TokenValidator):
    """
    Validates viewer tokens issued by the portal's identity provider.

    The claim named by ``IdentityConfig.user_id_claim`` is required, since
    BearerIdentityResolver reads the viewer id from it; a token without it
    is rejected here rather than resolved to nobody later.
    """

    def __init__(self, config: IdentityConfig):
        self.config = config
        self.issuer = config.issuer
        self.audience = config.audience
        self.jwks_uri = config.jwks_uri
        self.user_id_claim = config.user_id_claim

        self.jwks_client = None
        if self.jwks_uri and config.is_configured:
            try:
                self.jwks_client = PyJWKClient(
                    self.jwks_uri,
                    cache_keys=True,
                    lifespan=3600
                )
            except Exception as e:
                logger.warning(f"Failed to initialize JWKS client for {self.jwks_uri}: {e}")

        # token -> (claims, expires_at)
        self.cache: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self.cache_ttl = 300

    def _cached(self, token: str) -> Optional[Dict[str, Any]]:
        entry = self.cache.get(token)
        if entry is None:
            return None
        claims, expires_at = entry
        if time.time() < expires_at:
            return claims
        del self.cache[token]
        return None

    async def validate_jwt_async(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Verify a viewer token.

        Args:
            token: JWT, with or without the "Bearer " prefix

        Returns:
            Tuple of (is_valid, claims or None)
        """
        if token.startswith("Bearer "):
            token = token[7:]

        claims = self._cached(token)
        if claims is not None:
            return True, claims

        if not self.config.is_configured:
            logger.debug("Identity provider not configured - treating viewer as anonymous")
            return False, None

        if not self.jwks_client:
            logger.error("JWKS client not initialized - cannot verify viewer tokens")
            return False, None

        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)

            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=SIGNING_ALGORITHMS,
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_aud": bool(self.audience),
                    "verify_iss": bool(self.issuer),
                    "verify_exp": True,
                    "require": ["exp", self.user_id_claim]
                }
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Viewer token expired")
            return False, None
        except jwt.InvalidAudienceError:
            logger.debug(f"Viewer token audience mismatch (expected {self.audience})")
            return False, None
        except jwt.InvalidIssuerError:
            logger.debug(f"Viewer token issuer mismatch (expected {self.issuer})")
            return False, None
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid viewer token: {e}")
            return False, None
        except Exception as e:
            logger.error(f"Unexpected error verifying viewer token: {e}")
            return False, None

        # Never cache past the token's own expiry
        expires_at = min(time.time() + self.cache_ttl, float(claims["exp"]))
        self.cache[token] = (claims, expires_at)
        return True, claims
