"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the authentication stack based on configuration
- Wires dependencies together
- Returns only the service facade (hiding implementation)
"""

import logging
from typing import Any, Optional

from .auth import ModuleKeyVerifier
from .identity import BearerIdentityResolver
from .interfaces import TokenValidator
from .oidc_validator import OIDCValidator
from .service import DefaultAuthenticationService, AuthenticationService
from .userinfo import UserInfoValidator
from ...config.provider import ConfigProvider, IdentityConfig

logger = logging.getLogger(__name__)


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates all auth components
    - Wires them together via dependency injection
    - Returns only the public interface
    """

    @staticmethod
    def build_token_validator(identity_config: IdentityConfig) -> TokenValidator:
        """Pick the token validator matching the identity configuration."""
        if identity_config.uses_userinfo:
            logger.info("Resolving bearer identities via the userinfo endpoint")
            return UserInfoValidator(identity_config)

        if identity_config.is_configured:
            logger.info("Resolving bearer identities via OIDC JWKS validation")
        else:
            logger.info("No identity provider configured - bearer tokens will be ignored")
        # An unconfigured OIDCValidator rejects every token
        return OIDCValidator(identity_config)

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        redis_client: Any,
        token_validator: Optional[TokenValidator] = None,
    ) -> AuthenticationService:
        """
        Build the complete authentication stack.

        Args:
            config_provider: Configuration provider
            redis_client: Async Redis client holding module key hashes
            token_validator: Optional override (tests, custom providers)

        Returns:
            AuthenticationService facade (hides all implementation details)
        """
        identity_config = config_provider.get_identity_config()

        if token_validator is None:
            token_validator = AuthFactory.build_token_validator(identity_config)

        resolver = BearerIdentityResolver(token_validator, identity_config.user_id_claim)
        return DefaultAuthenticationService(ModuleKeyVerifier(redis_client), resolver)
