"""
Module key authentication for the Portal Gateway.

A module key is a shared secret minted out of band. Only its SHA-256 hex
digest is stored; the raw secret is shown once at minting time and never
persisted.
"""

import hashlib
import hmac
import json
import logging
import secrets
from datetime import UTC, datetime
from typing import Dict, Optional, Tuple

from ...errors import ValidationFailure

logger = logging.getLogger(__name__)

MODULE_KEY_PREFIX = "module:key:"
AUDIT_LIST = "gateway:audit"
AUDIT_MAX_EVENTS = 10000

# 24 random bytes -> 48 hex characters
MODULE_KEY_BYTES = 24


def hash_module_key(secret: str) -> str:
    """Return the lowercase hex SHA-256 digest of a module secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def generate_module_key() -> Tuple[str, str]:
    """
    Mint a new module secret.

    Returns:
        Tuple of (secret, key_hash). Store only the hash.
    """
    secret = secrets.token_hex(MODULE_KEY_BYTES)
    return secret, hash_module_key(secret)


def module_key_redis_key(module_id: str) -> str:
    return f"{MODULE_KEY_PREFIX}{module_id}"


def _is_sha256_hex(value: str) -> bool:
    return len(value) == 64 and all(c in "0123456789abcdef" for c in value)


class ModuleKeyVerifier:
    """
    Verifies module secrets against stored one-way hashes.

    An unknown module is indistinguishable from a wrong key: both verify
    as False through the same digest comparison.
    """

    def __init__(self, redis_client):
        """
        Initialize key verifier.

        Args:
            redis_client: Async Redis client from API Core
        """
        self.redis = redis_client

    async def verify(self, module_id: str, candidate_secret: str) -> bool:
        """
        Verify a module secret.

        Args:
            module_id: Module identifier
            candidate_secret: Secret supplied by the caller (x-module-key)

        Returns:
            True if SHA-256(candidate_secret) matches the stored hash
        """
        if not module_id or not candidate_secret:
            return False

        try:
            stored_hash = await self.redis.get(module_key_redis_key(module_id))
        except Exception as e:
            # Fail closed: a lookup error never authorizes
            logger.warning(f"Module key lookup failed for {module_id}: {e}")
            return False

        if isinstance(stored_hash, bytes):
            stored_hash = stored_hash.decode("utf-8")

        candidate_hash = hash_module_key(candidate_secret)
        # Unknown modules still pay for a digest comparison
        matches = hmac.compare_digest(candidate_hash, stored_hash or "")
        return bool(stored_hash) and matches


class ModuleKeyAdmin:
    """
    Out-of-band module key administration.

    One active hash per module: rotation overwrites the stored value.
    Every change is recorded in the audit list.
    """

    def __init__(self, redis_client):
        self.redis = redis_client

    async def rotate(self, module_id: str) -> str:
        """
        Mint a new secret for a module, replacing any previous one.

        Returns:
            The raw secret. It cannot be recovered later.
        """
        if not module_id:
            raise ValidationFailure("module_id is required")

        secret, key_hash = generate_module_key()
        await self.redis.set(module_key_redis_key(module_id), key_hash)

        await self._log_event(
            "module_key_rotated",
            {"module_id": module_id, "timestamp": datetime.now(UTC).isoformat()},
        )
        logger.info(f"Rotated module key for {module_id}")
        return secret

    async def register(self, module_id: str, key_hash: str) -> None:
        """Store a precomputed SHA-256 hex digest for a module."""
        if not module_id:
            raise ValidationFailure("module_id is required")
        key_hash = (key_hash or "").strip().lower()
        if not _is_sha256_hex(key_hash):
            raise ValidationFailure("key_hash must be a 64 character SHA-256 hex digest")

        await self.redis.set(module_key_redis_key(module_id), key_hash)
        await self._log_event(
            "module_key_registered",
            {"module_id": module_id, "timestamp": datetime.now(UTC).isoformat()},
        )

    async def revoke(self, module_id: str) -> bool:
        """
        Revoke a module's key.

        Returns:
            True if a key existed and was removed
        """
        removed = await self.redis.delete(module_key_redis_key(module_id))
        if removed:
            await self._log_event(
                "module_key_revoked",
                {"module_id": module_id, "timestamp": datetime.now(UTC).isoformat()},
            )
        return bool(removed)

    async def exists(self, module_id: str) -> bool:
        return await self.redis.exists(module_key_redis_key(module_id)) > 0

    async def _log_event(self, event_type: str, data: dict, correlation_id: Optional[str] = None):
        """
        Log security event for audit with optional correlation ID.

        Args:
            event_type: Type of security event
            data: Event data
            correlation_id: Optional correlation ID for tracing
        """
        event = {
            "type": event_type,
            "data": data,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(UTC).isoformat(),
        }

        await self.redis.lpush(AUDIT_LIST, json.dumps(event))
        await self.redis.ltrim(AUDIT_LIST, 0, AUDIT_MAX_EVENTS - 1)


class AdminKeyModule:
    """
    Static admin API keys guarding key administration endpoints.

    Keys come from configuration in "key" or "service:key" form.
    """

    def __init__(self, api_keys: Dict[str, Optional[str]]):
        self.api_keys = dict(api_keys)

    async def verify_api_key(self, api_key: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Verify an admin API key.

        Args:
            api_key: API key from X-API-Key header

        Returns:
            Tuple of (is_valid, service_identity)
        """
        if not api_key:
            return False, None

        for known_key, service_identity in self.api_keys.items():
            if hmac.compare_digest(api_key.encode("utf-8"), known_key.encode("utf-8")):
                return True, service_identity

        return False, None
