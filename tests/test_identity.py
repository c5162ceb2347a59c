"""
Tests for bearer identity resolution and the authentication service facade.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from portalgate.config.provider import IdentityConfig
from portalgate.modules.auth import (
    AccessContext,
    AuthFactory,
    BearerIdentityResolver,
    DefaultAuthenticationService,
    hash_module_key,
)
from portalgate.modules.auth.oidc_validator import OIDCValidator
from portalgate.modules.auth.userinfo import UserInfoValidator


@pytest.fixture
def token_validator():
    validator = AsyncMock()
    validator.validate_jwt_async = AsyncMock(return_value=(True, {"sub": "u1"}))
    return validator


@pytest.fixture
def key_verifier():
    verifier = AsyncMock()
    verifier.verify = AsyncMock(return_value=True)
    return verifier


def test_extract_bearer():
    """Test only the Bearer scheme yields a token."""
    assert BearerIdentityResolver.extract_bearer("Bearer abc") == "abc"
    assert BearerIdentityResolver.extract_bearer("Bearer   ") is None
    assert BearerIdentityResolver.extract_bearer("Basic abc") is None
    assert BearerIdentityResolver.extract_bearer(None) is None


@pytest.mark.asyncio
async def test_resolve_valid_token(token_validator):
    resolver = BearerIdentityResolver(token_validator)

    assert await resolver.resolve("Bearer good") == "u1"
    token_validator.validate_jwt_async.assert_called_once_with("good")


@pytest.mark.asyncio
async def test_resolve_invalid_token(token_validator):
    """Test a rejected token is anonymous."""
    token_validator.validate_jwt_async.return_value = (False, None)
    resolver = BearerIdentityResolver(token_validator)

    assert await resolver.resolve("Bearer bad") is None


@pytest.mark.asyncio
async def test_resolve_validator_error_is_anonymous(token_validator):
    """Test a failing identity provider never raises to the caller."""
    token_validator.validate_jwt_async.side_effect = RuntimeError("provider down")
    resolver = BearerIdentityResolver(token_validator)

    assert await resolver.resolve("Bearer good") is None


@pytest.mark.asyncio
async def test_resolve_custom_claim(token_validator):
    token_validator.validate_jwt_async.return_value = (True, {"sub": "x", "user_id": "u9"})
    resolver = BearerIdentityResolver(token_validator, user_id_claim="user_id")

    assert await resolver.resolve("Bearer good") == "u9"


@pytest.mark.asyncio
async def test_resolve_missing_claim(token_validator):
    token_validator.validate_jwt_async.return_value = (True, {"email": "a@example.com"})
    resolver = BearerIdentityResolver(token_validator)

    assert await resolver.resolve("Bearer good") is None


@pytest.mark.asyncio
async def test_resolve_without_header_skips_validator(token_validator):
    resolver = BearerIdentityResolver(token_validator)

    assert await resolver.resolve(None) is None
    token_validator.validate_jwt_async.assert_not_called()


@pytest.mark.asyncio
async def test_authenticate_module(key_verifier, token_validator):
    service = DefaultAuthenticationService(key_verifier, BearerIdentityResolver(token_validator))

    result = await service.authenticate_module("m1", "k1")

    assert result.ok is True
    assert result.identity == "m1"
    assert result.method == "module_key"


@pytest.mark.asyncio
async def test_authenticate_module_missing_credentials(key_verifier, token_validator):
    service = DefaultAuthenticationService(key_verifier, BearerIdentityResolver(token_validator))

    result = await service.authenticate_module("m1", None)

    assert result.ok is False
    assert result.error == "Missing module id or module key"
    key_verifier.verify.assert_not_called()


@pytest.mark.asyncio
async def test_authenticate_module_invalid_key(key_verifier, token_validator):
    key_verifier.verify.return_value = False
    service = DefaultAuthenticationService(key_verifier, BearerIdentityResolver(token_validator))

    result = await service.authenticate_module("m1", "wrong")

    assert result.ok is False
    assert result.error == "Invalid module key"


@pytest.mark.asyncio
async def test_resolve_access_combinations(key_verifier, token_validator):
    """Test key and bearer contribute independently; invalid ones grant nothing."""
    service = DefaultAuthenticationService(key_verifier, BearerIdentityResolver(token_validator))

    assert await service.resolve_access("m1", "k1", "Bearer t") == AccessContext(True, "u1")
    assert await service.resolve_access("m1", None, None) == AccessContext(False, None)

    key_verifier.verify.return_value = False
    token_validator.validate_jwt_async.return_value = (False, None)
    assert await service.resolve_access("m1", "bad", "Bearer bad") == AccessContext(False, None)


def test_factory_picks_userinfo_validator():
    config = IdentityConfig(
        enabled=True,
        issuer=None,
        jwks_uri=None,
        audience=None,
        userinfo_url="https://id.example.org/auth/v1/user",
    )

    assert isinstance(AuthFactory.build_token_validator(config), UserInfoValidator)


def test_factory_defaults_to_oidc_validator():
    config = IdentityConfig(enabled=False, issuer=None, jwks_uri=None, audience=None)

    validator = AuthFactory.build_token_validator(config)

    assert isinstance(validator, OIDCValidator)
    assert validator.jwks_client is None


@pytest.mark.asyncio
async def test_factory_build_wires_key_verifier(mock_redis):
    """Test the built service verifies module keys against Redis."""
    mock_redis.get.return_value = hash_module_key("k1")
    config_provider = MagicMock()
    config_provider.get_identity_config.return_value = IdentityConfig(
        enabled=False, issuer=None, jwks_uri=None, audience=None
    )

    service = AuthFactory.build(config_provider, mock_redis)

    assert (await service.authenticate_module("m1", "k1")).ok is True
    assert (await service.authenticate_module("m1", "k2")).ok is False
