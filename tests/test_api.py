"""
HTTP tests for the gateway endpoints.

The app is exercised without its lifespan: module globals are patched with
services built over the in-memory Redis double.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from portalgate import main
from portalgate.config.provider import IdentityConfig
from portalgate.modules.auth import AdminKeyModule, AuthFactory, ModuleKeyAdmin, hash_module_key
from portalgate.modules.module_data import ModuleDataService, ModuleDataStore

ADMIN_KEY = "admin-secret"


def fake_token_validator():
    """Bearer "u1-token" belongs to u1, "u2-token" to u2; anything else is rejected."""
    users = {"u1-token": "u1", "u2-token": "u2"}

    async def validate(token):
        if token in users:
            return True, {"sub": users[token]}
        return False, None

    validator = AsyncMock()
    validator.validate_jwt_async = AsyncMock(side_effect=validate)
    return validator


def build_services(redis_client):
    config_provider = MagicMock()
    config_provider.get_identity_config.return_value = IdentityConfig(
        enabled=True, issuer=None, jwks_uri=None, audience=None
    )
    auth_service = AuthFactory.build(config_provider, redis_client, token_validator=fake_token_validator())
    return {
        "redis_client": redis_client,
        "data_service": ModuleDataService(auth_service, ModuleDataStore(redis_client)),
        "key_admin": ModuleKeyAdmin(redis_client),
        "admin_auth": AdminKeyModule({ADMIN_KEY: "ops"}),
    }


@pytest.fixture
def client(mock_redis_with_data, module_key_m1):
    with patch.multiple(main, **build_services(mock_redis_with_data)):
        yield TestClient(main.app)


def write(client, body, module_id="m1", module_key="k1"):
    headers = {}
    if module_id is not None:
        headers["x-module-id"] = module_id
    if module_key is not None:
        headers["x-module-key"] = module_key
    return client.post("/module-data", json=body, headers=headers)


def test_end_to_end_scenario(client):
    """Test write with the module key, then reads as anonymous, owner and module."""
    response = write(client, {"userId": "u1", "visibility": "private", "payload": {"foo": 1}})
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    anonymous = client.get("/module-data", params={"module_id": "m1"})
    assert anonymous.status_code == 200
    assert anonymous.json() == {"data": []}

    owner = client.get(
        "/module-data", params={"module_id": "m1"}, headers={"Authorization": "Bearer u1-token"}
    )
    assert [r["payload"] for r in owner.json()["data"]] == [{"foo": 1}]

    module = client.get("/module-data", params={"module_id": "m1"}, headers={"x-module-key": "k1"})
    records = module.json()["data"]
    assert len(records) == 1
    assert records[0]["moduleId"] == "m1"
    assert records[0]["userId"] == "u1"
    assert records[0]["visibility"] == "private"
    assert "updatedAt" in records[0]


def test_other_user_cannot_read_private(client):
    write(client, {"userId": "u1", "visibility": "private", "payload": 1})

    response = client.get(
        "/module-data", params={"module_id": "m1"}, headers={"Authorization": "Bearer u2-token"}
    )

    assert response.json() == {"data": []}


def test_invalid_credentials_on_read_grant_nothing(client):
    """Test bad key and bad token downgrade to anonymous instead of failing."""
    write(client, {"userId": "u1", "visibility": "authenticated", "payload": 1})
    write(client, {"userId": "u2", "visibility": "public", "payload": 2})

    response = client.get(
        "/module-data",
        params={"module_id": "m1"},
        headers={"x-module-key": "wrong", "Authorization": "Bearer forged"},
    )

    assert response.status_code == 200
    assert [r["userId"] for r in response.json()["data"]] == ["u2"]


def test_admin_tier_requires_module_key(client):
    write(client, {"userId": "u1", "visibility": "admin", "payload": 1})

    owner = client.get(
        "/module-data", params={"module_id": "m1"}, headers={"Authorization": "Bearer u1-token"}
    )
    module = client.get("/module-data", params={"module_id": "m1"}, headers={"x-module-key": "k1"})

    assert owner.json() == {"data": []}
    assert len(module.json()["data"]) == 1


def test_user_filter(client):
    write(client, {"userId": "u1", "visibility": "public", "payload": 1})
    write(client, {"userId": "u2", "visibility": "public", "payload": 2})

    response = client.get("/module-data", params={"module_id": "m1", "user_id": "u2"})

    assert [r["payload"] for r in response.json()["data"]] == [2]


def test_upsert_over_http(client):
    write(client, {"userId": "u1", "visibility": "public", "payload": 1})
    write(client, {"userId": "u1", "payload": 2})

    records = client.get("/module-data", params={"module_id": "m1"}, headers={"x-module-key": "k1"}).json()["data"]

    assert len(records) == 1
    assert records[0]["payload"] == 2
    assert records[0]["visibility"] == "private"


@pytest.mark.parametrize(
    "module_id,module_key",
    [(None, "k1"), ("m1", None), (None, None)],
)
def test_write_missing_headers(client, module_id, module_key):
    response = write(client, {"userId": "u1", "payload": 1}, module_id=module_id, module_key=module_key)

    assert response.status_code == 401


def test_write_invalid_key(client):
    response = write(client, {"userId": "u1", "payload": 1}, module_key="k2")

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid module key"}


def test_write_unknown_module(client):
    response = write(client, {"userId": "u1", "payload": 1}, module_id="m2")

    assert response.status_code == 403


@pytest.mark.parametrize(
    "body",
    [
        {"payload": 1},
        {"userId": "u1"},
        {"userId": "u1", "payload": None},
        {"userId": "", "payload": 1},
        ["u1", 1],
    ],
)
def test_write_missing_fields(client, body):
    response = write(client, body)

    assert response.status_code == 400
    assert "error" in response.json()


def test_write_non_json_body(client):
    response = client.post(
        "/module-data",
        content=b"not json",
        headers={"x-module-id": "m1", "x-module-key": "k1", "content-type": "application/json"},
    )

    assert response.status_code == 400


def test_write_body_not_utf8(client):
    response = client.post(
        "/module-data",
        content=b'{"userId": "\xff"}',
        headers={"x-module-id": "m1", "x-module-key": "k1", "content-type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_write_store_failure(mock_redis, client):
    """Test a store failure answers 500 with the underlying message."""
    mock_redis.get.return_value = hash_module_key("k1")
    mock_redis.hset.side_effect = RedisConnectionError("connection refused")

    with patch.multiple(main, **build_services(mock_redis)):
        response = write(client, {"userId": "u1", "payload": 1})

    assert response.status_code == 500
    assert response.json() == {"error": "connection refused"}


def test_read_requires_module_id(client):
    assert client.get("/module-data").status_code == 400
    assert client.get("/module-data", params={"module_id": ""}).status_code == 400


def test_read_rejects_empty_user_id(client):
    assert client.get("/module-data", params={"module_id": "m1", "user_id": ""}).status_code == 400


def test_rotate_and_revoke_module_key(client):
    response = client.post("/admin/modules/m9/key", headers={"X-API-Key": ADMIN_KEY})

    assert response.status_code == 201
    body = response.json()
    assert body["moduleId"] == "m9"
    assert len(body["key"]) == 48
    assert "createdAt" in body

    written = write(client, {"userId": "u1", "payload": 1}, module_id="m9", module_key=body["key"])
    assert written.status_code == 200

    revoked = client.delete("/admin/modules/m9/key", headers={"X-API-Key": ADMIN_KEY})
    assert revoked.status_code == 204

    rejected = write(client, {"userId": "u1", "payload": 1}, module_id="m9", module_key=body["key"])
    assert rejected.status_code == 403

    missing = client.delete("/admin/modules/m9/key", headers={"X-API-Key": ADMIN_KEY})
    assert missing.status_code == 404


def test_admin_endpoints_require_api_key(client):
    assert client.post("/admin/modules/m1/key").status_code == 401
    assert client.post("/admin/modules/m1/key", headers={"X-API-Key": "nope"}).status_code == 401
    assert client.delete("/admin/modules/m1/key", headers={"X-API-Key": "nope"}).status_code == 401


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_without_services():
    with patch.multiple(main, redis_client=None, data_service=None, key_admin=None, admin_auth=None):
        response = TestClient(main.app).get("/health")

    assert response.status_code == 503
    assert response.json()["modules"] == "not initialized"


def test_uninitialized_service():
    with patch.multiple(main, data_service=None):
        response = TestClient(main.app).get("/module-data", params={"module_id": "m1"})

    assert response.status_code == 503


def test_health_redis_down(mock_redis, client):
    mock_redis.ping.side_effect = RedisConnectionError("down")

    with patch.multiple(main, **build_services(mock_redis)):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_redis_connection_error_handler(mock_redis, client):
    """Test an unhandled Redis connection error answers 503."""
    mock_redis.set.side_effect = RedisConnectionError("down")

    with patch.multiple(main, **build_services(mock_redis)):
        response = client.post("/admin/modules/m1/key", headers={"X-API-Key": ADMIN_KEY})

    assert response.status_code == 503
    assert response.json() == {"error": "Database connection failed"}


def test_run_binds_from_config():
    """Test the server is started with the configured bind address and port."""
    with patch.object(main.config, "_config", {**main.config.get_all(), "host": "127.0.0.1", "port": 9090}):
        with patch("portalgate.main.uvicorn.run") as uvicorn_run:
            main.run()

    kwargs = uvicorn_run.call_args.kwargs
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9090
    assert kwargs["log_config"]["loggers"]["portalgate"]["level"] == main.config.get("log_level").upper()
