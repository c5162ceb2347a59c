"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Dict, Optional, Protocol


@dataclass
class IdentityConfig:
    """
    Identity provider configuration.

    Bearer credentials are verified either locally against the provider's
    JWKS (OIDC) or remotely through its userinfo endpoint.
    """
    enabled: bool
    issuer: Optional[str]
    jwks_uri: Optional[str]
    audience: Optional[str]
    userinfo_url: Optional[str] = None
    userinfo_api_key: Optional[str] = None
    user_id_claim: str = "sub"

    @property
    def is_configured(self) -> bool:
        """Check if JWKS validation is properly configured."""
        return self.enabled and bool(self.issuer)

    @property
    def uses_userinfo(self) -> bool:
        """Check if remote userinfo validation is configured."""
        return self.enabled and bool(self.userinfo_url)


@dataclass
class AdminConfig:
    """Admin API key configuration (key -> optional service identity)."""
    api_keys: Dict[str, Optional[str]]

    @property
    def enabled(self) -> bool:
        return bool(self.api_keys)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_identity_config(self) -> IdentityConfig:
        """Get identity provider configuration."""
        ...

    def get_admin_config(self) -> AdminConfig:
        """Get admin authentication configuration."""
        ...


def parse_api_keys(raw: Optional[str]) -> Dict[str, Optional[str]]:
    """
    Parse a comma separated key list.

    Format: "key1,service1:key2" - a plain key has no service identity.
    """
    keys: Dict[str, Optional[str]] = {}
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            service, key = entry.split(":", 1)
            keys[key.strip()] = service.strip() or None
        else:
            keys[entry] = None
    return keys


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_identity_config(self) -> IdentityConfig:
        """Get identity provider configuration from environment variables."""
        enabled = os.getenv("IDENTITY_ENABLED", "true").lower() == "true"
        issuer = os.getenv("OIDC_ISSUER")

        return IdentityConfig(
            enabled=enabled,
            issuer=issuer,
            jwks_uri=os.getenv("OIDC_JWKS_URI") or (f"{issuer}/jwks" if issuer else None),
            audience=os.getenv("OIDC_AUDIENCE"),
            userinfo_url=os.getenv("IDENTITY_USERINFO_URL"),
            userinfo_api_key=os.getenv("IDENTITY_USERINFO_API_KEY"),
            user_id_claim=os.getenv("IDENTITY_USER_ID_CLAIM", "sub"),
        )

    def get_admin_config(self) -> AdminConfig:
        """
        Get admin configuration from environment variables.

        Admin endpoints stay disabled (every request rejected) when
        ADMIN_API_KEYS is unset.
        """
        return AdminConfig(api_keys=parse_api_keys(os.getenv("ADMIN_API_KEYS")))
