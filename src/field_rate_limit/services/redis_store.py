from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Callable, Sequence
from typing import Any

from redis.asyncio import Redis

from field_rate_limit.core.config import get_settings
from field_rate_limit.services.identity import Identity
from field_rate_limit.services.store import Store

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "redis-store-id::"


def _now_ms() -> int:
    return int(time.time() * 1000)


class RedisStore(Store):
    """
    Store backed by redis (or anything exposing async get/set like redis.asyncio.Redis).

    One string key per identity holding a JSON array of ms timestamps, with an
    EX expiry so idle identities vanish window_ms after their newest call.
    Backend errors are not caught here.
    """

    def __init__(
            self,
            client: Any,
            *,
            key_prefix: str = DEFAULT_KEY_PREFIX,
            clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.client = client
        self._key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_url(cls, url: str | None = None, *, key_prefix: str | None = None) -> "RedisStore":
        settings = get_settings()
        client = Redis.from_url(url or settings.redis_url)
        return cls(client, key_prefix=key_prefix if key_prefix is not None else settings.key_prefix)

    async def close(self) -> None:
        logger.debug("Closing redis store client")
        await self.client.aclose()

    def key_for(self, identity: Identity) -> str:
        return f"{self._key_prefix}{identity.context_identity}:{identity.field_identity}"

    def expiry_seconds(self, timestamps: Sequence[int], window_ms: int) -> int:
        seconds = math.ceil((self._clock() + window_ms - max(timestamps)) / 1000)
        return max(seconds, 1)

    async def get_for_identity(self, identity: Identity) -> list[int]:
        raw = await self.client.get(self.key_for(identity))
        if not raw:
            return []
        return [int(t) for t in json.loads(raw)]

    async def set_for_identity(
            self,
            identity: Identity,
            timestamps: Sequence[int],
            window_ms: int | None = None,
    ) -> None:
        key = self.key_for(identity)
        payload = json.dumps([int(t) for t in timestamps])

        if window_ms and timestamps:
            ex = self.expiry_seconds(timestamps, window_ms)
            logger.debug("Redis store set key=%s count=%s ex=%s", key, len(timestamps), ex)
            await self.client.set(key, payload, ex=ex)
        else:
            logger.debug("Redis store set key=%s count=%s", key, len(timestamps))
            await self.client.set(key, payload)
