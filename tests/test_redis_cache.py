import json
import logging
from unittest import mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.cache.redis_cache import RedisCache, redact_key
from app.services.registration_service import pending_token_key
from app.services.token_service import create_verification_token


def make_client():
    client = mock.MagicMock()
    client.ping = mock.AsyncMock(return_value=True)
    client.set = mock.AsyncMock(return_value=True)
    client.get = mock.AsyncMock(return_value=None)
    client.delete = mock.AsyncMock(return_value=1)
    client.aclose = mock.AsyncMock()
    return client


async def connected_cache(client=None):
    cache = RedisCache("redis://example:6379/0", client=client or make_client())
    assert await cache.connect()
    return cache


@pytest.mark.asyncio
async def test_connect_marks_store_available():
    cache = await connected_cache()
    assert cache.is_available
    assert await cache.ping()


@pytest.mark.asyncio
async def test_failed_connect_disables_every_operation():
    client = make_client()
    client.ping.side_effect = RedisConnectionError("Connection refused")
    cache = RedisCache("redis://example:6379/0", client=client)

    assert await cache.connect() is False
    assert not cache.is_available

    await cache.set("k", {"a": 1}, 60)
    assert await cache.get("k") is None
    await cache.delete("k")
    assert not await cache.ping()
    client.set.assert_not_called()
    client.get.assert_not_called()
    client.delete.assert_not_called()


@pytest.mark.asyncio
async def test_set_serialises_and_delegates_expiry():
    client = make_client()
    cache = await connected_cache(client)

    await cache.set("pending_email:ada@x.com", {"verification_token": "t"}, 3600)

    client.set.assert_awaited_once_with(
        "pending_email:ada@x.com", json.dumps({"verification_token": "t"}), ex=3600
    )


@pytest.mark.asyncio
async def test_get_deserialises_records():
    client = make_client()
    client.get.return_value = json.dumps({"username": "ada", "email": "ada@x.com"})
    cache = await connected_cache(client)

    assert await cache.get("pending_registration:t") == {"username": "ada", "email": "ada@x.com"}


@pytest.mark.asyncio
async def test_missing_key_is_none():
    cache = await connected_cache()
    assert await cache.get("nope") is None


@pytest.mark.asyncio
async def test_command_failures_are_cache_misses():
    client = make_client()
    cache = await connected_cache(client)
    client.get.side_effect = RedisTimeoutError("Timeout reading from socket")
    client.set.side_effect = RedisConnectionError("Connection reset by peer")
    client.delete.side_effect = OSError("Broken pipe")

    assert await cache.get("k") is None
    await cache.set("k", {"a": 1}, 60)
    await cache.delete("k")


@pytest.mark.asyncio
async def test_undecodable_value_is_a_miss():
    client = make_client()
    client.get.return_value = "{not json"
    cache = await connected_cache(client)
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_ping_reports_a_dead_connection():
    client = make_client()
    cache = await connected_cache(client)
    client.ping.side_effect = RedisConnectionError("gone")
    assert not await cache.ping()


@pytest.mark.asyncio
async def test_disconnect_closes_client():
    client = make_client()
    cache = await connected_cache(client)
    await cache.disconnect()
    client.aclose.assert_awaited_once()
    assert not cache.is_available


@pytest.mark.asyncio
async def test_failure_logs_never_contain_the_verification_token(caplog):
    token = create_verification_token("ada@x.com", "ada")
    key = pending_token_key(token)
    client = make_client()
    cache = await connected_cache(client)
    client.get.side_effect = RedisConnectionError("boom")
    client.set.side_effect = RedisConnectionError("boom")
    client.delete.side_effect = RedisConnectionError("boom")

    with caplog.at_level(logging.WARNING, logger="app.cache.redis_cache"):
        assert await cache.get(key) is None
        await cache.set(key, {"username": "ada"}, 60)
        await cache.delete(key)

    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 3
    assert all(redact_key(key) in message for message in messages)
    assert not any(token in message for message in messages)


@pytest.mark.asyncio
async def test_undecodable_value_log_hides_the_token(caplog):
    token = create_verification_token("ada@x.com", "ada")
    client = make_client()
    client.get.return_value = "{not json"
    cache = await connected_cache(client)

    with caplog.at_level(logging.WARNING, logger="app.cache.redis_cache"):
        assert await cache.get(pending_token_key(token)) is None

    assert caplog.records
    assert not any(token in record.getMessage() for record in caplog.records)


def test_redact_key_keeps_namespace_and_short_prefix():
    assert redact_key("pending_registration:eyJhbGciOiJIUzI1NiJ9.rest") == "pending_registration:eyJhbGci..."
    assert redact_key("pending_email:ada@x.com") == "pending_email:ada@x.co..."
