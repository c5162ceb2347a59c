"""
In-process cross-window message channel.

Models the browser's window messaging primitive for asyncio: messages are
structured-cloned (deep copied), delivered on a later loop iteration, and
silently dropped when the target origin does not match the receiver.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

WILDCARD_ORIGIN = "*"


def origin_of(url: Optional[str]) -> Optional[str]:
    """Return ``scheme://host[:port]`` of a URL, or None if it has no origin."""
    if not url:
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


@dataclass(frozen=True)
class MessageEvent:
    """A delivered message: its data, the sender's origin and the sender window."""

    data: Any
    origin: str
    source: Optional["Window"]


Listener = Callable[[MessageEvent], None]


class Window:
    """
    A browsing context that can post and receive messages.

    Frames are created with ``open_frame``; the child keeps a reference to
    its parent and, like a browser, records the embedding page as referrer.
    """

    def __init__(self, origin: str, parent: Optional["Window"] = None,
                 referrer: Optional[str] = None):
        normalized = origin_of(origin)
        if normalized is None:
            raise ValueError(f"Invalid window origin: {origin!r}")
        self.origin = normalized
        self.parent = parent
        self.referrer = referrer
        self._listeners: List[Listener] = []

    def open_frame(self, origin: str, referrer: Optional[str] = None) -> "Window":
        """Embed a child frame loaded from ``origin``."""
        return Window(origin, parent=self, referrer=referrer if referrer is not None else f"{self.origin}/")

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def post_message(self, message: Any, target_origin: str = WILDCARD_ORIGIN,
                     source: Optional["Window"] = None) -> None:
        """
        Post ``message`` to this window.

        Must be called from a running event loop; delivery happens on a
        later iteration of it.
        """
        if target_origin != WILDCARD_ORIGIN and origin_of(target_origin) != self.origin:
            logger.debug(f"Dropped message for {target_origin}: receiver origin is {self.origin}")
            return

        event = MessageEvent(
            data=copy.deepcopy(message),
            origin=source.origin if source is not None else self.origin,
            source=source,
        )
        asyncio.get_running_loop().call_soon(self._dispatch, event)

    def _dispatch(self, event: MessageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A failing listener must not starve the others
                logger.exception("Message listener raised")
