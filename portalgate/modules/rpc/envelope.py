"""
Portal RPC wire format.

Requests and responses share one untyped cross-window channel with
unrelated application traffic, so decoding is parse-or-reject: anything
that does not carry the exact protocol/version pair and type tag decodes
to None and is ignored by both ends.
"""

from collections.abc import Mapping
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PORTAL_RPC_PROTOCOL = "rg-portal-rpc"
PORTAL_RPC_VERSION = 1


class RpcErrorDetail(BaseModel):
    """Error carried by a failed response."""

    code: str
    message: str


class RpcRequest(BaseModel):
    """Request posted by an embedded module to its host frame."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    protocol: Literal["rg-portal-rpc"] = PORTAL_RPC_PROTOCOL
    version: Literal[1] = PORTAL_RPC_VERSION
    type: Literal["request"] = "request"
    id: str
    module_id: str = Field(alias="moduleId")
    action: str
    payload: Any = None

    def to_message(self) -> dict:
        message = {
            "protocol": self.protocol,
            "version": self.version,
            "type": self.type,
            "id": self.id,
            "moduleId": self.module_id,
            "action": self.action,
        }
        if self.payload is not None:
            message["payload"] = self.payload
        return message


class RpcResponse(BaseModel):
    """Response posted by the host, correlated to a request by ``id``."""

    model_config = ConfigDict(frozen=True)

    protocol: Literal["rg-portal-rpc"] = PORTAL_RPC_PROTOCOL
    version: Literal[1] = PORTAL_RPC_VERSION
    type: Literal["response"] = "response"
    id: str
    ok: bool
    result: Any = None
    error: Optional[RpcErrorDetail] = None

    def to_message(self) -> dict:
        message = {
            "protocol": self.protocol,
            "version": self.version,
            "type": self.type,
            "id": self.id,
            "ok": self.ok,
        }
        if self.result is not None:
            message["result"] = self.result
        if self.error is not None:
            message["error"] = self.error.model_dump()
        return message


def _is_envelope(value: Any, type_tag: str) -> bool:
    if not isinstance(value, Mapping):
        return False
    version = value.get("version")
    return (
        value.get("protocol") == PORTAL_RPC_PROTOCOL
        # bool is an int subclass; True must not pass for 1
        and isinstance(version, int)
        and not isinstance(version, bool)
        and version == PORTAL_RPC_VERSION
        and value.get("type") == type_tag
        and isinstance(value.get("id"), str)
    )


def is_request(value: Any) -> bool:
    """True if ``value`` is a well-formed portal RPC request message."""
    return (
        _is_envelope(value, "request")
        and isinstance(value.get("moduleId"), str)
        and isinstance(value.get("action"), str)
    )


def is_response(value: Any) -> bool:
    """True if ``value`` is a well-formed portal RPC response message."""
    return _is_envelope(value, "response") and isinstance(value.get("ok"), bool)


def parse_request(value: Any) -> Optional[RpcRequest]:
    """Decode a request message, or None if it is not gateway traffic."""
    if not is_request(value):
        return None
    return RpcRequest(
        id=value["id"],
        module_id=value["moduleId"],
        action=value["action"],
        payload=value.get("payload"),
    )


def _parse_error(value: Any) -> Optional[RpcErrorDetail]:
    if not isinstance(value, Mapping) or not isinstance(value.get("code"), str):
        return None
    message = value.get("message")
    return RpcErrorDetail(code=value["code"], message=message if isinstance(message, str) else value["code"])


def parse_response(value: Any) -> Optional[RpcResponse]:
    """Decode a response message, or None if it is not gateway traffic."""
    if not is_response(value):
        return None
    return RpcResponse(
        id=value["id"],
        ok=value["ok"],
        result=value.get("result"),
        error=_parse_error(value.get("error")),
    )


def build_request(request_id: str, module_id: str, action: str, payload: Any = None) -> RpcRequest:
    return RpcRequest(id=request_id, module_id=module_id, action=action, payload=payload)


def build_response(
    request: RpcRequest,
    ok: bool,
    result: Any = None,
    error: Optional[RpcErrorDetail] = None,
) -> RpcResponse:
    """Build the response correlated to ``request``."""
    return RpcResponse(id=request.id, ok=ok, result=result, error=error)
