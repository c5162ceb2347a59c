"""
Portal RPC host for the embedding page.

Listens on the host window for request envelopes, checks them against the
module registry and dispatches them to registered action handlers. Every
decision either answers with a correlated response or drops the message
without a word (wrong origin, impersonated frame).
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from ...errors import RpcCallError
from ..registry import ModuleEntry, ModuleRegistry
from .channel import MessageEvent, Window
from .envelope import RpcErrorDetail, RpcRequest, RpcResponse, build_response, parse_request

logger = logging.getLogger(__name__)

Handler = Callable[[RpcRequest, MessageEvent], Union[Any, Awaitable[Any]]]


def _error(request: RpcRequest, code: str, message: str) -> RpcResponse:
    return build_response(request, False, error=RpcErrorDetail(code=code, message=message))


class RpcHost:
    """
    Serves portal RPC requests from embedded module frames.

    Example:
        >>> host = RpcHost(page, registry)
        >>> @host.handler("ui.toast")
        ... async def toast(request, event):
        ...     return {"shown": True}
        >>> host.start()
    """

    def __init__(self, window: Window, registry: ModuleRegistry):
        self.window = window
        self.registry = registry
        self._handlers: Dict[str, Handler] = {}
        self._frames: Dict[str, Window] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._listening = False

    def start(self) -> None:
        if not self._listening:
            self.window.add_listener(self._on_message)
            self._listening = True

    def stop(self) -> None:
        if self._listening:
            self.window.remove_listener(self._on_message)
            self._listening = False

    def add_handler(self, action: str, handler: Handler) -> None:
        self._handlers[action] = handler

    def handler(self, action: str) -> Callable[[Handler], Handler]:
        """Decorator form of add_handler."""
        def decorator(fn: Handler) -> Handler:
            self.add_handler(action, fn)
            return fn
        return decorator

    def register_frame(self, module_id: str, frame: Optional[Window]) -> None:
        """
        Pin a module to the frame it was rendered in.

        Once pinned, requests naming the module are only accepted from that
        window. Passing None unpins it.
        """
        if frame is None:
            self._frames.pop(module_id, None)
            return
        self._frames[module_id] = frame

    def unregister_frame(self, module_id: str) -> None:
        self._frames.pop(module_id, None)

    async def handle_request(self, event: MessageEvent, request: RpcRequest) -> Optional[RpcResponse]:
        """
        Decide and execute one request.

        Returns:
            The response to send, or None when the message must be dropped
        """
        module = self.registry.get(request.module_id)
        if module is None:
            return _error(request, "UNKNOWN_MODULE", "Unknown module.")

        allowed_origins = module.allowed_origins
        if allowed_origins is None:
            allowed_origins = [self.window.origin]
        if event.origin not in allowed_origins:
            logger.warning(f"Dropped {request.action} for {module.id} from unexpected origin {event.origin}")
            return None

        expected_frame = self._frames.get(request.module_id)
        if expected_frame is not None and event.source is not expected_frame:
            logger.warning(f"Dropped {request.action} for {module.id} from an unregistered frame")
            return None

        if request.action not in module.allowed_actions:
            return _error(request, "NOT_ALLOWED", "Action not allowed.")

        handler = self._handlers.get(request.action)
        if handler is None:
            return _error(request, "UNSUPPORTED_ACTION", "Unsupported action.")

        try:
            result = handler(request, event)
            if inspect.isawaitable(result):
                result = await result
        except RpcCallError as e:
            return _error(request, e.code, e.message)
        except Exception as e:
            logger.exception(f"Handler for {request.action} failed: {e}")
            return _error(request, "INTERNAL_ERROR", "Action failed.")

        return build_response(request, True, result)

    def _on_message(self, event: MessageEvent) -> None:
        request = parse_request(event.data)
        if request is None:
            return
        task = asyncio.get_running_loop().create_task(self._serve(event, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _serve(self, event: MessageEvent, request: RpcRequest) -> None:
        response = await self.handle_request(event, request)
        if response is None or event.source is None:
            return
        event.source.post_message(response.to_message(), event.origin, source=self.window)


def session_token_handler(token_source: Callable[[], Optional[Dict[str, Any]]]) -> Handler:
    """
    Build an ``auth.getToken`` handler.

    ``token_source`` returns ``{"accessToken": ..., "expiresAt": ...}`` for
    the signed-in session, or None when nobody is signed in.
    """
    def get_token(request: RpcRequest, event: MessageEvent) -> Dict[str, Any]:
        session = token_source()
        if not session or not session.get("accessToken"):
            raise RpcCallError("NOT_AUTHENTICATED", "Sign in required.")
        return {"accessToken": session["accessToken"], "expiresAt": session.get("expiresAt")}

    return get_token


PROFILE_UPDATED_MESSAGE = {"type": "profile-updated"}
TOAST_KINDS = ("info", "success", "error")


def profile_refresh_handler(window: Window) -> Handler:
    """
    Build a ``profile.refresh`` handler.

    Broadcasts ``{"type": "profile-updated"}`` to same-origin listeners on
    the host window; the actual refresh happens wherever that is observed.
    """
    def refresh(request: RpcRequest, event: MessageEvent) -> Dict[str, Any]:
        window.post_message(dict(PROFILE_UPDATED_MESSAGE), window.origin, source=window)
        return {"queued": True}

    return refresh


def toast_handler(show: Callable[[str, str], None]) -> Handler:
    """
    Build a ``ui.toast`` handler that passes ``(kind, message)`` to ``show``.

    Unknown kinds fall back to "info". A request without a message is
    acknowledged but shows nothing.
    """
    def toast(request: RpcRequest, event: MessageEvent) -> Dict[str, Any]:
        payload = request.payload if isinstance(request.payload, dict) else {}
        message = payload.get("message")
        if message:
            kind = payload.get("kind")
            show(kind if kind in TOAST_KINDS else "info", message)
        return {"shown": True}

    return toast


def module_open_handler(
    registry: ModuleRegistry,
    opener: Callable[[ModuleEntry, str, Optional[Dict[str, str]]], Any],
) -> Handler:
    """
    Build a ``module.open`` handler.

    The payload names the target ``moduleId`` and optionally a ``surface``
    (default "dialog") and query ``params``. ``opener`` presents the module
    and may raise RpcCallError (e.g. NOT_ALLOWED) to refuse.
    """
    def open_module(request: RpcRequest, event: MessageEvent) -> Dict[str, Any]:
        payload = request.payload if isinstance(request.payload, dict) else {}
        module_id = payload.get("moduleId")
        if not module_id:
            raise RpcCallError("BAD_REQUEST", "moduleId required.")
        module = registry.get(module_id)
        if module is None:
            raise RpcCallError("UNKNOWN_MODULE", "Unknown module.")

        params = payload.get("params")
        opener(module, payload.get("surface") or "dialog", params if isinstance(params, dict) else None)
        return {"opened": True}

    return open_module
