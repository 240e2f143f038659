from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from vidtube.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

CATALOG_PREFIX = "api:videos"


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


class CatalogCache:
    def __init__(self, redis: Redis, ttl_seconds: int):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(page: int, limit: int, search: str | None) -> str:
        return f"{CATALOG_PREFIX}:{page}:{limit}:{(search or '').strip().lower()}"

    def get(self, page: int, limit: int, search: str | None) -> dict[str, Any] | None:
        key = self.key(page, limit, search)
        try:
            raw = self.redis.get(key)
        except RedisError as exc:
            logger.warning("Catalog cache read failed: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt catalog cache entry %s", key)
            return None

    def put(self, page: int, limit: int, search: str | None, value: dict[str, Any]) -> None:
        try:
            self.redis.setex(self.key(page, limit, search), self.ttl_seconds, json.dumps(value, default=str))
        except (RedisError, TypeError, ValueError) as exc:
            logger.warning("Catalog cache write failed: %s", exc)

    def clear(self) -> int:
        try:
            keys = list(self.redis.scan_iter(match=f"{CATALOG_PREFIX}:*"))
            cleared = int(self.redis.delete(*keys)) if keys else 0
        except RedisError as exc:
            logger.warning("Catalog cache invalidation failed: %s", exc)
            return 0
        logger.debug("Cleared %d catalog cache keys", cleared)
        return cleared
