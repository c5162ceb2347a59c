"""
Authentication Module - Black Box Interface

Purpose: Verify module keys and resolve bearer identities
Interface: ModuleKeyVerifier.verify(), BearerIdentityResolver.resolve(),
           AuthenticationService.authenticate_module()/resolve_access()
Hidden: Key storage, hash comparison, identity provider protocol

This module can be completely replaced with any other auth implementation
without affecting other modules.
"""

from .auth import (
    AdminKeyModule,
    ModuleKeyAdmin,
    ModuleKeyVerifier,
    generate_module_key,
    hash_module_key,
)
from .factory import AuthFactory
from .identity import BearerIdentityResolver
from .service import AccessContext, AuthResult, AuthenticationService, DefaultAuthenticationService

__all__ = [
    "AccessContext",
    "AdminKeyModule",
    "AuthFactory",
    "AuthResult",
    "AuthenticationService",
    "BearerIdentityResolver",
    "DefaultAuthenticationService",
    "ModuleKeyAdmin",
    "ModuleKeyVerifier",
    "generate_module_key",
    "hash_module_key",
]
