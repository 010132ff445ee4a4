"""Redis connection lifecycle for the active-group cache."""

import logging
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisConnection:
    """Owns one asyncio Redis client with an explicit connect/disconnect lifecycle."""

    def __init__(self, url: str, socket_timeout: float = 5.0):
        self._url = url
        self._socket_timeout = socket_timeout
        self._client: Optional[aioredis.Redis] = None
        self._connected = False

    @property
    def client(self) -> Optional[aioredis.Redis]:
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """
        Build the client and verify it with a PING.

        A failed ping leaves the client in place: redis-py reconnects lazily,
        so the cache recovers once the server is reachable again.
        """
        self._client = aioredis.Redis.from_url(
            self._url,
            decode_responses=True,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
        )
        try:
            await self._client.ping()
            self._connected = True
            logger.info(f"Redis connected: {self._url.split('@')[-1]}")
        except RedisError as e:
            self._connected = False
            logger.warning(f"Redis connection failed, cache degraded: {e}")
        return self._connected

    async def disconnect(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("Redis client disconnected")
            except RedisError as e:
                logger.warning(f"Error disconnecting Redis client: {e}")
        self._client = None
        self._connected = False
