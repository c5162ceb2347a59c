"""
Portal RPC Module - Black Box Interface

Purpose: Request/response calls from embedded module frames to the host page
Interface: RpcClient.call(), RpcHost.handler(), is_request(), is_response(),
           built-in action handler factories
Hidden: Correlation table, timers, envelope encoding, host policy checks

Both ends ignore any message that is not portal RPC traffic.
"""

from .channel import MessageEvent, Window, origin_of
from .client import DEFAULT_TIMEOUT_SECONDS, RpcClient, resolve_target_origin
from .envelope import (
    PORTAL_RPC_PROTOCOL,
    PORTAL_RPC_VERSION,
    RpcErrorDetail,
    RpcRequest,
    RpcResponse,
    build_request,
    build_response,
    is_request,
    is_response,
    parse_request,
    parse_response,
)
from .host import (
    RpcHost,
    module_open_handler,
    profile_refresh_handler,
    session_token_handler,
    toast_handler,
)

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "MessageEvent",
    "PORTAL_RPC_PROTOCOL",
    "PORTAL_RPC_VERSION",
    "RpcClient",
    "RpcErrorDetail",
    "RpcHost",
    "RpcRequest",
    "RpcResponse",
    "Window",
    "build_request",
    "build_response",
    "is_request",
    "is_response",
    "module_open_handler",
    "origin_of",
    "parse_request",
    "parse_response",
    "profile_refresh_handler",
    "resolve_target_origin",
    "session_token_handler",
    "toast_handler",
]
