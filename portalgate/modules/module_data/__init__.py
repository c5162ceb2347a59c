"""
Module Data Module - Black Box Interface

Purpose: User-scoped records written by authenticated modules
Interface: ModuleDataService.write()/read(), ModuleDataStore.upsert()/list(), is_readable()
Hidden: Redis layout, serialization, visibility policy evaluation

Records are keyed by (module id, user id); writes are upserts.
"""

from .service import ModuleDataService
from .store import ModuleDataRecord, ModuleDataStore
from .visibility import Visibility, coerce_visibility, is_readable

__all__ = [
    "ModuleDataRecord",
    "ModuleDataService",
    "ModuleDataStore",
    "Visibility",
    "coerce_visibility",
    "is_readable",
]
