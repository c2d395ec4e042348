"""
Redis-backed transient store.

Holds state that must not outlive a bounded window (pending registrations).
Every operation degrades to a no-op / cache miss when Redis is unreachable:
callers never see a Redis exception. A failed initial connection keeps the
store disabled until ``connect()`` is called again; the client itself never
retries on its own.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from redis import asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from app.errors.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


def redact_key(key: str) -> str:
    """Key as it may appear in logs: the namespace plus the first 8 characters."""
    namespace, sep, rest = key.rpartition(":")
    return f"{namespace}{sep}{rest[:8]}..."


class RedisCache:
    """JSON key-value store with per-key expiry.

    Values are any JSON-serialisable structure; (de)serialisation happens
    here. Expiry is always delegated to Redis (``SET ... EX``).
    """

    def __init__(
        self,
        url: str,
        socket_timeout: float = 2.0,
        connect_timeout: float = 2.0,
        client: Optional[aioredis.Redis] = None,
    ):
        self.url = url
        self.socket_timeout = socket_timeout
        self.connect_timeout = connect_timeout
        self._client = client
        self._connected = False

    @property
    def is_available(self) -> bool:
        return self._connected

    def _build_client(self) -> aioredis.Redis:
        return aioredis.Redis.from_url(
            self.url,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connect_timeout,
            retry_on_timeout=False,
            retry=Retry(NoBackoff(), 0),
            decode_responses=True,
        )

    async def connect(self) -> bool:
        """Open the connection. Returns False (and stays disabled) on failure."""
        if self._connected:
            return True
        if self._client is None:
            self._client = self._build_client()
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis at {self.url}: {e}")
            logger.warning("Redis is not available. Email verification is disabled until it reconnects.")
            return False
        self._connected = True
        logger.info("Connected to Redis")
        return True

    async def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error while closing Redis connection: {e}")
        finally:
            self._connected = False

    async def ping(self) -> bool:
        """Health check; does not change the connected state."""
        if not self._connected:
            return False
        try:
            await self._execute("PING", lambda client: client.ping())
        except CacheUnavailableError:
            return False
        return True

    async def _execute(self, command: str, call: Callable[[aioredis.Redis], Awaitable[Any]]) -> Any:
        try:
            return await call(self._client)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"Redis {command} failed: {e}") from e

    async def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        if not self._connected:
            return
        payload = json.dumps(value, default=str)
        try:
            await self._execute("SET", lambda client: client.set(key, payload, ex=ttl))
        except CacheUnavailableError as e:
            logger.warning(f"{e} (key={redact_key(key)})")

    async def get(self, key: str) -> Optional[Any]:
        if not self._connected:
            return None
        try:
            data = await self._execute("GET", lambda client: client.get(key))
        except CacheUnavailableError as e:
            logger.warning(f"{e} (key={redact_key(key)})")
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            logger.warning(f"Discarding undecodable cache value for key={redact_key(key)}")
            return None

    async def delete(self, key: str) -> None:
        if not self._connected:
            return
        try:
            await self._execute("DEL", lambda client: client.delete(key))
        except CacheUnavailableError as e:
            logger.warning(f"{e} (key={redact_key(key)})")
