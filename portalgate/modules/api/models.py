"""
Portal Gateway API data models.

These models define the JSON bodies accepted and returned by the
gateway's HTTP endpoints. Field names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..module_data import ModuleDataRecord, Visibility


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Request Models (API Input)


class ModuleDataWriteRequest(_WireModel):
    """
    Body of a module-authenticated write.

    Fields are loosely typed on purpose: missing values are reported as a
    400 by the route, and an unknown visibility falls back to private
    instead of failing.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: Any = Field(None, alias="userId", description="User the record belongs to")
    visibility: Any = Field(None, description="public, authenticated, private or admin")
    payload: Any = Field(None, description="Opaque JSON value stored for the module")


# Response Models (API Output)


class ModuleDataRecordResponse(_WireModel):
    module_id: str = Field(..., alias="moduleId")
    user_id: str = Field(..., alias="userId")
    visibility: Visibility
    payload: Any
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_record(cls, record: ModuleDataRecord) -> "ModuleDataRecordResponse":
        return cls(
            module_id=record.module_id,
            user_id=record.user_id,
            visibility=record.visibility,
            payload=record.payload,
            updated_at=record.updated_at,
        )


class ModuleDataListResponse(_WireModel):
    data: List[ModuleDataRecordResponse]


class WriteAcknowledgement(_WireModel):
    ok: bool = True


class ModuleKeyResponse(_WireModel):
    """Freshly minted module key. The secret is only ever returned here."""

    module_id: str = Field(..., alias="moduleId")
    key: str
    created_at: datetime = Field(..., alias="createdAt")


class ErrorResponse(_WireModel):
    error: str
    detail: Optional[str] = None
