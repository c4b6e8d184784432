"""Redis message bus."""
import json
from typing import Optional

import redis.asyncio as redis

from ledger_engine.settings import settings


class RedisBus:
    """Redis pub/sub publisher for outbound events."""

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis."""
        self._redis = redis.from_url(self._url or settings.redis_url, decode_responses=True)

    async def disconnect(self):
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, channel: str, message: dict) -> int:
        """Publish a message to a channel. Returns the number of subscribers that got it."""
        if not self._redis:
            await self.connect()
        return await self._redis.publish(channel, json.dumps(message))

    async def ping(self) -> bool:
        if not self._redis:
            await self.connect()
        return bool(await self._redis.ping())


# Global instance
redis_bus = RedisBus()
