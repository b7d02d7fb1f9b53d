"""Redis-backed cache of dashboard statistics.

Entries are keyed per viewing scope (global, tenant, owner, reviewer).
Every lifecycle transition invalidates the keys of the scopes that can see
the assessment, once the transition has committed.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from accreditation.config import settings

logger = structlog.get_logger()

KEY_PREFIX = "accreditation:stats"


def global_key() -> str:
    return f"{KEY_PREFIX}:global"


def tenant_key(tenant_id: str) -> str:
    return f"{KEY_PREFIX}:tenant:{tenant_id}"


def user_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:user:{user_id}"


def reviewer_key(reviewer_id: str) -> str:
    return f"{KEY_PREFIX}:reviewer:{reviewer_id}"


class StatisticsCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None) -> None:  # type: ignore[type-arg]
        self.client = client
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.stats_cache_ttl_seconds

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning("stats_cache_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: dict[str, Any]) -> None:
        try:
            await self.client.set(key, json.dumps(value), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("stats_cache_write_failed", key=key, error=str(e))

    async def invalidate(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except RedisError as e:
            # Entries expire after ttl_seconds regardless
            logger.warning("stats_cache_invalidate_failed", keys=list(keys), error=str(e))
            return
        logger.debug("stats_cache_invalidated", keys=list(keys))

    async def invalidate_assessment(
        self,
        *,
        tenant_id: str,
        owner_id: str,
        reviewer_id: str | None = None,
    ) -> None:
        keys = [global_key(), tenant_key(tenant_id), user_key(owner_id)]
        if reviewer_id:
            keys.append(reviewer_key(reviewer_id))
        await self.invalidate(*keys)
