"""Authentication interfaces following Black Box Design principles."""
from typing import Protocol, Optional, Tuple, Dict, Any


class TokenValidator(Protocol):
    """Protocol for bearer token validation - allows swappable implementations."""

    async def validate_jwt_async(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Validate a bearer token.

        Args:
            token: Token string (with or without Bearer prefix)

        Returns:
            Tuple of (is_valid, claims_dict or None)
        """
        ...


class KeyVerifier(Protocol):
    """Protocol for module key verification."""

    async def verify(self, module_id: str, candidate_secret: str) -> bool:
        """Return True only if the secret matches the module's stored hash."""
        ...


class IdentityResolver(Protocol):
    """Protocol for turning a bearer credential into an end-user id."""

    async def resolve(self, authorization: Optional[str]) -> Optional[str]:
        """
        Resolve the viewer behind an Authorization header value.

        Returns:
            User id, or None when absent or invalid
        """
        ...
