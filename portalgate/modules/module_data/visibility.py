"""Visibility tiers and the read decision for module data records."""

from enum import Enum
from typing import Any, Optional


class Visibility(str, Enum):
    """Which non-module callers may read a record."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    PRIVATE = "private"
    ADMIN = "admin"


def coerce_visibility(value: Any) -> Visibility:
    """Map a caller-supplied tag onto the enum; anything unknown becomes PRIVATE."""
    if isinstance(value, Visibility):
        return value
    if isinstance(value, str):
        try:
            return Visibility(value)
        except ValueError:
            pass
    return Visibility.PRIVATE


def is_readable(
    module_authorized: bool,
    viewer_id: Optional[str],
    visibility: Visibility,
    owner_id: str,
) -> bool:
    """
    Decide whether a record may be returned to the caller.

    A caller holding a valid module key reads everything, admin tier
    included. Without a key the admin tier is never readable, not even by
    its owner.
    """
    if module_authorized:
        return True

    if visibility == Visibility.PUBLIC:
        return True
    if visibility == Visibility.AUTHENTICATED:
        return bool(viewer_id)
    if visibility == Visibility.PRIVATE:
        return bool(viewer_id) and viewer_id == owner_id
    # ADMIN, and anything unrecognised
    return False
