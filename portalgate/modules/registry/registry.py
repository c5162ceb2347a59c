"""
Module registry.

The registry document lists every module the portal knows about. Only
``live`` modules are visible to the gateway; each may declare the origins
its frames are served from and the portal RPC actions it may invoke.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

LIVE_STATUS = "live"


class PortalRpcCapability(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    allowed_actions: List[str] = Field(default_factory=list, alias="allowedActions")


class ModuleCapabilities(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    portal_rpc: Optional[PortalRpcCapability] = Field(None, alias="portalRpc")


class ModuleEntry(BaseModel):
    """One registry entry. Unknown fields (presentation, tags, ...) are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    status: Optional[str] = None
    url: Optional[str] = None
    allowed_origins: Optional[List[str]] = Field(None, alias="allowedOrigins")
    capabilities: ModuleCapabilities = Field(default_factory=ModuleCapabilities)

    @property
    def is_live(self) -> bool:
        return self.status == LIVE_STATUS

    @property
    def allowed_actions(self) -> List[str]:
        if self.capabilities.portal_rpc is None:
            return []
        return list(self.capabilities.portal_rpc.allowed_actions)


class ModuleRegistry:
    def __init__(self, entries: Iterable[ModuleEntry]):
        self._modules: Dict[str, ModuleEntry] = {}
        for entry in entries:
            if not entry.is_live:
                continue
            if entry.id in self._modules:
                logger.warning(f"Duplicate registry entry for module {entry.id} - keeping the first")
                continue
            self._modules[entry.id] = entry

    @classmethod
    def from_dict(cls, document: Dict[str, Any]) -> "ModuleRegistry":
        """Build from a parsed ``{"modules": [...]}`` document."""
        raw_modules = document.get("modules") or []
        return cls(ModuleEntry.model_validate(raw) for raw in raw_modules)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ModuleRegistry":
        """Load a registry JSON document from disk."""
        with open(path, "r", encoding="utf-8") as fh:
            document = json.load(fh)
        registry = cls.from_dict(document)
        logger.info(f"Loaded {len(registry)} live modules from {path}")
        return registry

    def get(self, module_id: str) -> Optional[ModuleEntry]:
        return self._modules.get(module_id)

    def modules(self) -> List[ModuleEntry]:
        return list(self._modules.values())

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)
