"""
Active-Group Cache.

Holds the most recently touched outage group per (controller, event type)
in Redis. The store stays authoritative: a failed or undecodable read is a
miss, and entries simply expire after the TTL.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from backend.app.core.exceptions import CacheError
from backend.app.schemas.outages import GroupSnapshot

logger = logging.getLogger(__name__)

KEY_PREFIX = "outage_group"
DEFAULT_TTL_SECONDS = 3600


def cache_key(controller_id: str, event_type: str) -> str:
    return f"{KEY_PREFIX}:{controller_id}:{event_type}"


class ActiveGroupCache:
    """Best-effort accelerant in front of the group store. Last writer wins."""

    def __init__(self, client: Optional[aioredis.Redis], ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def get(self, controller_id: str, event_type: str) -> Optional[GroupSnapshot]:
        if self.client is None:
            return None

        key = cache_key(controller_id, event_type)
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

        if raw is None:
            return None

        try:
            return GroupSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def set(
        self,
        controller_id: str,
        event_type: str,
        snapshot: GroupSnapshot,
        ttl: Optional[int] = None,
    ) -> None:
        """Write the snapshot. Raises CacheError; the caller's durable write stands."""
        key = cache_key(controller_id, event_type)
        expiry = ttl if ttl is not None else self.ttl_seconds
        if expiry <= 0:
            raise ValueError(f"Cache TTL must be positive, got {expiry}")
        if self.client is None:
            raise CacheError(f"Cache unavailable, {key} not written")

        try:
            await self.client.set(key, snapshot.model_dump_json(), ex=expiry)
        except RedisError as e:
            raise CacheError(f"Cache write failed for {key}: {e}") from e
