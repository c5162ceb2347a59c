"""
Module data gateway service.

Thin orchestration of authentication and storage. It is the only place
where a module write path and a visibility-filtered read path meet.
"""

import logging
from typing import Any, List, Optional

from ...errors import AuthenticationFailure, ValidationFailure
from ..auth.service import AuthenticationService
from .store import ModuleDataRecord, ModuleDataStore

logger = logging.getLogger(__name__)


class ModuleDataService:
    def __init__(self, auth_service: AuthenticationService, store: ModuleDataStore):
        self.auth = auth_service
        self.store = store

    async def write(
        self,
        module_id: Optional[str],
        module_key: Optional[str],
        user_id: Any,
        visibility: Any,
        payload: Any,
    ) -> ModuleDataRecord:
        """
        Module-authenticated write on a user's behalf.

        Raises:
            AuthenticationFailure: Missing or invalid module key
            ValidationFailure: Missing userId or payload
        """
        result = await self.auth.authenticate_module(module_id, module_key)
        if not result.ok:
            raise AuthenticationFailure(result.error or "Invalid module key")

        record = await self.store.upsert(module_id, user_id, visibility, payload)
        logger.info(
            f"Module {module_id} wrote {record.visibility.value} data for user {record.user_id}"
        )
        return record

    async def read(
        self,
        module_id: Optional[str],
        user_id: Optional[str] = None,
        module_key: Optional[str] = None,
        authorization: Optional[str] = None,
    ) -> List[ModuleDataRecord]:
        """
        Read a module's records as seen by the caller.

        An invalid module key or bearer token is not an error here; it
        simply grants no access beyond anonymous.
        """
        if not module_id:
            raise ValidationFailure("module_id is required")
        if user_id is not None and not user_id:
            raise ValidationFailure("user_id must not be empty")

        access = await self.auth.resolve_access(module_id, module_key, authorization)
        return await self.store.list(
            module_id,
            user_id=user_id,
            module_authorized=access.module_authorized,
            viewer_id=access.viewer_id,
        )
