"""
Registry Module - Black Box Interface

Purpose: Describe the live portal modules
Interface: ModuleRegistry.get(), modules(), from_file()
Hidden: Registry document format

Used by the portal RPC host to decide which origins and actions a module may use.
"""

from .registry import ModuleEntry, ModuleRegistry

__all__ = ["ModuleEntry", "ModuleRegistry"]
