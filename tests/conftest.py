"""
Shared pytest fixtures for Portal Gateway tests.

This module provides common fixtures including:
- Redis mocks for auth and module data tests
- An in-memory Redis double for tests that read back what they write
- Window pairs for portal RPC tests
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from portalgate.modules.auth import hash_module_key
from portalgate.modules.rpc import Window


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()

    # Basic operations
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    redis.ping = AsyncMock(return_value=True)

    # List operations
    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()

    # Hash operations
    redis.hset = AsyncMock(return_value=1)
    redis.hgetall = AsyncMock(return_value={})

    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    Strings, hashes and lists live in one keyspace like in Redis.
    """
    storage = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, **kwargs):
        storage[key] = value
        return True

    async def mock_get(key):
        value = storage.get(key)
        return value if isinstance(value, str) else None

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage)

    async def mock_hset(key, field, value):
        bucket = storage.setdefault(key, {})
        created = field not in bucket
        bucket[field] = value
        return int(created)

    async def mock_hgetall(key):
        return dict(storage.get(key, {}))

    async def mock_lpush(key, *values):
        items = storage.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def mock_ltrim(key, start, end):
        items = storage.get(key, [])
        storage[key] = items[start:end + 1]
        return True

    async def mock_ping():
        return True

    redis.set = mock_set
    redis.get = mock_get
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.hset = mock_hset
    redis.hgetall = mock_hgetall
    redis.lpush = mock_lpush
    redis.ltrim = mock_ltrim
    redis.ping = mock_ping
    redis._storage = storage  # Expose for test assertions

    return redis


@pytest.fixture
def module_key_m1(mock_redis_with_data):
    """Register secret "k1" for module "m1"."""
    mock_redis_with_data._storage["module:key:m1"] = hash_module_key("k1")
    return "k1"


# =============================================================================
# Window fixtures
# =============================================================================

HOST_ORIGIN = "https://portal.example.org"
MODULE_ORIGIN = "https://modules.example.org"


@pytest.fixture
def host_window():
    return Window(HOST_ORIGIN)


@pytest.fixture
def module_frame(host_window):
    """A module frame embedded in the host page, referrer set to the host."""
    return host_window.open_frame(MODULE_ORIGIN)


async def settle(rounds: int = 5) -> None:
    """Let scheduled message deliveries and handler tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
