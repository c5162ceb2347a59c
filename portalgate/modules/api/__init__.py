"""
API Module - Black Box Interface

Purpose: HTTP request/response shapes
Interface: Pydantic models used by the FastAPI routes
Hidden: Wire aliases and serialization details

The API layer only orchestrates - it contains no business logic.
All logic is delegated to appropriate modules.
"""

from .models import (
    ErrorResponse,
    ModuleDataListResponse,
    ModuleDataRecordResponse,
    ModuleDataWriteRequest,
    ModuleKeyResponse,
    WriteAcknowledgement,
)

__all__ = [
    "ErrorResponse",
    "ModuleDataListResponse",
    "ModuleDataRecordResponse",
    "ModuleDataWriteRequest",
    "ModuleKeyResponse",
    "WriteAcknowledgement",
]
