"""
Gateway error taxonomy.

Protocol mismatches are deliberately absent: foreign window messages are
filtered by the envelope guards and never raised.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for all gateway failures."""


class AuthenticationFailure(GatewayError):
    """Missing or invalid module secret or bearer credential."""


class ValidationFailure(GatewayError, ValueError):
    """Malformed write payload or invalid filter value."""


class InfrastructureFailure(GatewayError):
    """Underlying store unavailable. Message is surfaced verbatim."""


class RpcCallError(GatewayError):
    """
    Error reported to an RPC caller.

    Carries the wire-level ``{code, message}`` pair so callers can branch on
    ``code`` without parsing text.
    """

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or code
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class RpcTimeoutError(RpcCallError):
    """No response arrived within the call's timeout window."""

    def __init__(self, message: str = "Portal RPC timed out."):
        super().__init__("TIMEOUT", message)
