"""
Portal RPC client for embedded modules.

Each call is correlated by a fresh id and independently timed. Whichever
comes first, the response or the timer, settles the call and removes it
from the pending table; the other signal then finds nothing and is dropped.
"""

import asyncio
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ...errors import RpcCallError, RpcTimeoutError
from .channel import WILDCARD_ORIGIN, MessageEvent, Window, origin_of
from .envelope import build_request, parse_response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 6.0


def _positive_timeout(timeout: float) -> float:
    if timeout is None or isinstance(timeout, bool) or not math.isfinite(timeout) or timeout <= 0:
        raise ValueError(f"Portal RPC timeout must be a positive number of seconds, got {timeout!r}")
    return float(timeout)


def resolve_target_origin(window: Window, target_origin: Optional[str] = None) -> str:
    """
    Pick the origin requests are posted to.

    Explicit option first, then the origin of the embedding page (referrer),
    then the wildcard. The wildcard lets any parent receive the requests;
    pass an explicit origin where that matters.
    """
    if target_origin:
        return target_origin

    referrer_origin = origin_of(window.referrer)
    if referrer_origin:
        return referrer_origin

    logger.warning("No referrer available - posting portal RPC requests to any origin")
    return WILDCARD_ORIGIN


@dataclass
class PendingRequest:
    id: str
    future: asyncio.Future
    timeout_handle: asyncio.TimerHandle


class RpcClient:
    """
    Issues portal RPC calls from an embedded frame to its host.

    Every client owns its pending table, so several clients (one per
    embedded module) can share a window without interfering.

    Example:
        >>> client = RpcClient("profile-generators", frame)
        >>> token = await client.call("auth.getToken")
    """

    def __init__(
        self,
        module_id: str,
        window: Window,
        target_origin: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        """
        Initialize the client and start listening for responses.

        Args:
            module_id: Module the requests are made on behalf of
            window: The module's own window; requests go to its parent
            target_origin: Origin of the host page (see resolve_target_origin)
            timeout: Default per-call timeout in seconds
            id_factory: Correlation id generator
        """
        if not module_id:
            raise ValueError("module_id is required")

        self.module_id = module_id
        self.window = window
        self.target_origin = resolve_target_origin(window, target_origin)
        self.timeout = _positive_timeout(timeout)
        self._new_id = id_factory
        self._pending: Dict[str, PendingRequest] = {}
        self._disposed = False

        window.add_listener(self._on_message)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def call(self, action: str, payload: Any = None, timeout: Optional[float] = None) -> Any:
        """
        Ask the host to perform ``action``.

        Args:
            action: Action name, e.g. "auth.getToken"
            payload: Optional JSON-compatible argument
            timeout: Override of the client's default timeout, in seconds

        Returns:
            The host's result

        Raises:
            RpcCallError: The host answered with ok=false, or the client was disposed
            RpcTimeoutError: No answer within the timeout
        """
        if self._disposed:
            raise RpcCallError("DISPOSED", "Portal RPC client disposed.")
        if self.window.parent is None:
            raise RuntimeError("Portal RPC requires an embedding host window.")

        timeout = self.timeout if timeout is None else _positive_timeout(timeout)
        loop = asyncio.get_running_loop()

        request_id = self._new_id()
        if request_id in self._pending:
            raise ValueError(f"Portal RPC request id {request_id!r} is already in flight")
        request = build_request(request_id, self.module_id, action, payload)

        future = loop.create_future()
        handle = loop.call_later(timeout, self._expire, request_id)
        self._pending[request_id] = PendingRequest(request_id, future, handle)

        self.window.parent.post_message(request.to_message(), self.target_origin, source=self.window)

        try:
            return await future
        except asyncio.CancelledError:
            self._discard(request_id)
            raise

    def _on_message(self, event: MessageEvent) -> None:
        response = parse_response(event.data)
        if response is None:
            return
        if self.target_origin != WILDCARD_ORIGIN and event.origin != origin_of(self.target_origin):
            return

        entry = self._pending.pop(response.id, None)
        if entry is None:
            # Already settled (timed out) or never ours
            return
        entry.timeout_handle.cancel()
        if entry.future.done():
            return

        if response.ok:
            entry.future.set_result(response.result)
        elif response.error is not None:
            entry.future.set_exception(RpcCallError(response.error.code, response.error.message))
        else:
            entry.future.set_exception(RpcCallError("UNKNOWN_ERROR", "Request failed."))

    def _expire(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None or entry.future.done():
            return
        logger.debug(f"Portal RPC call {request_id} timed out")
        entry.future.set_exception(RpcTimeoutError())

    def _discard(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.timeout_handle.cancel()

    def dispose(self) -> None:
        """Stop listening and fail every in-flight call with DISPOSED."""
        if self._disposed:
            return
        self._disposed = True
        self.window.remove_listener(self._on_message)

        for request_id in list(self._pending):
            entry = self._pending.pop(request_id)
            entry.timeout_handle.cancel()
            if not entry.future.done():
                entry.future.set_exception(RpcCallError("DISPOSED", "Portal RPC client disposed."))
