"""
Module data store backed by Redis.

Layout: one hash per module (``module:data:<module_id>``), one field per
owning user holding the JSON record. HSET gives upsert semantics with
last-writer-wins on concurrent writes to the same (module, user) key.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError

from ...errors import InfrastructureFailure, ValidationFailure
from .visibility import Visibility, coerce_visibility, is_readable

logger = logging.getLogger(__name__)

MODULE_DATA_PREFIX = "module:data:"


def module_data_redis_key(module_id: str) -> str:
    return f"{MODULE_DATA_PREFIX}{module_id}"


@dataclass
class ModuleDataRecord:
    """One user's data for one module. ``payload`` is opaque to the gateway."""

    module_id: str
    user_id: str
    visibility: Visibility
    payload: Any
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, as returned by the data endpoint."""
        return {
            "moduleId": self.module_id,
            "userId": self.user_id,
            "visibility": self.visibility.value,
            "payload": self.payload,
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleDataRecord":
        """Create from the stored JSON document."""
        return cls(
            module_id=data["moduleId"],
            user_id=data["userId"],
            visibility=coerce_visibility(data.get("visibility")),
            payload=data["payload"],
            updated_at=datetime.fromisoformat(data["updatedAt"]),
        )


class ModuleDataStore:
    def __init__(self, redis_client):
        """
        Initialize module data store.

        Args:
            redis_client: Async Redis client
        """
        self.redis = redis_client

    async def upsert(
        self,
        module_id: str,
        user_id: str,
        visibility: Any,
        payload: Any,
    ) -> ModuleDataRecord:
        """
        Create or replace the record for (module_id, user_id).

        Args:
            module_id: Owning module
            user_id: User the record belongs to
            visibility: Visibility tag; unknown values become private
            payload: Any JSON value except null

        Returns:
            The stored record

        Raises:
            ValidationFailure: Missing ids or null payload
            InfrastructureFailure: Redis unavailable
        """
        if not isinstance(module_id, str) or not module_id:
            raise ValidationFailure("module_id is required")
        if not isinstance(user_id, str) or not user_id:
            raise ValidationFailure("userId is required")
        if payload is None:
            raise ValidationFailure("payload is required")

        record = ModuleDataRecord(
            module_id=module_id,
            user_id=user_id,
            visibility=coerce_visibility(visibility),
            payload=payload,
            updated_at=datetime.now(UTC),
        )

        try:
            document = json.dumps(record.to_dict())
        except (TypeError, ValueError) as e:
            raise ValidationFailure(f"payload is not JSON serializable: {e}") from e

        try:
            await self.redis.hset(module_data_redis_key(module_id), user_id, document)
        except RedisError as e:
            logger.error(f"Failed to write module data for {module_id}: {e}")
            raise InfrastructureFailure(str(e)) from e

        return record

    async def fetch_all(self, module_id: str) -> List[ModuleDataRecord]:
        """Fetch every stored record of a module, unfiltered, ordered by user id."""
        try:
            raw = await self.redis.hgetall(module_data_redis_key(module_id))
        except RedisError as e:
            logger.error(f"Failed to read module data for {module_id}: {e}")
            raise InfrastructureFailure(str(e)) from e

        records = []
        for user_id in sorted(raw):
            try:
                records.append(ModuleDataRecord.from_dict(json.loads(raw[user_id])))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping undecodable record {module_id}/{user_id}: {e}")
        return records

    async def list(
        self,
        module_id: str,
        user_id: Optional[str] = None,
        module_authorized: bool = False,
        viewer_id: Optional[str] = None,
    ) -> List[ModuleDataRecord]:
        """
        List the records of a module visible to the caller.

        Args:
            module_id: Module whose records are read
            user_id: Optional owner filter, applied before visibility
            module_authorized: Caller presented a valid module key
            viewer_id: End user behind a valid bearer credential, if any

        Returns:
            Readable records
        """
        records = await self.fetch_all(module_id)
        if user_id is not None:
            records = [r for r in records if r.user_id == user_id]

        return [
            r for r in records
            if is_readable(module_authorized, viewer_id, r.visibility, r.user_id)
        ]
