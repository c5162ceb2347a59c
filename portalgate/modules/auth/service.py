"""
Authentication Service Facade following Black Box Design principles.

This module provides:
- A clean interface for gateway authentication that hides implementation details
- Standardized authentication results
- Protocol definitions for swappable implementations
"""

import logging
from dataclasses import dataclass
from typing import Optional, Literal, Protocol

from .interfaces import IdentityResolver, KeyVerifier

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Standardized authentication result."""
    ok: bool
    identity: Optional[str]
    method: Optional[Literal["module_key", "bearer"]]
    error: Optional[str] = None


@dataclass(frozen=True)
class AccessContext:
    """Who is reading: a module backend, an end user, both or neither."""
    module_authorized: bool
    viewer_id: Optional[str]


class AuthenticationService(Protocol):
    """Protocol for gateway authentication services."""

    async def authenticate_module(self, module_id: str, module_key: Optional[str]) -> AuthResult:
        """Authenticate a module backend by its key."""
        ...

    async def resolve_access(
        self,
        module_id: str,
        module_key: Optional[str],
        authorization: Optional[str],
    ) -> AccessContext:
        """Resolve the read access context of a request."""
        ...


class DefaultAuthenticationService:
    """
    Default implementation of AuthenticationService.

    Combines the module key verifier with the bearer identity resolver.
    Both fail closed: an invalid credential simply grants nothing.
    """

    def __init__(self, key_verifier: KeyVerifier, identity_resolver: IdentityResolver):
        self._keys = key_verifier
        self._identity = identity_resolver

    async def authenticate_module(self, module_id: str, module_key: Optional[str]) -> AuthResult:
        """
        Authenticate a module backend.

        Args:
            module_id: Module identifier (x-module-id)
            module_key: Module secret (x-module-key)

        Returns:
            AuthResult with the module id as identity on success
        """
        if not module_id or not module_key:
            return AuthResult(ok=False, identity=None, method=None,
                              error="Missing module id or module key")

        if await self._keys.verify(module_id, module_key):
            return AuthResult(ok=True, identity=module_id, method="module_key")

        logger.warning(f"Rejected module key for module {module_id}")
        return AuthResult(ok=False, identity=None, method=None, error="Invalid module key")

    async def resolve_access(
        self,
        module_id: str,
        module_key: Optional[str],
        authorization: Optional[str],
    ) -> AccessContext:
        """
        Resolve read access for a request.

        Args:
            module_id: Module whose records are being read
            module_key: Optional module secret
            authorization: Optional Authorization header value

        Returns:
            AccessContext; an invalid key or token contributes nothing
        """
        module_authorized = False
        if module_key:
            module_authorized = (await self.authenticate_module(module_id, module_key)).ok

        viewer_id = await self._identity.resolve(authorization)
        return AccessContext(module_authorized=module_authorized, viewer_id=viewer_id)
