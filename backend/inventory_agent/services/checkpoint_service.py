from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from redis import Redis

from ..agent.types import Message
from ..core.config import Settings, get_settings


def thread_key(thread_id: str) -> str:
    return f"thread:{thread_id}:messages"


class InMemoryCheckpointStore:
    """Process-local conversation history keyed by thread id."""

    def __init__(self) -> None:
        self._threads: Dict[str, List[Message]] = defaultdict(list)

    async def load(self, thread_id: str) -> Tuple[Message, ...]:
        return tuple(self._threads.get(thread_id, ()))

    async def save(self, thread_id: str, delta: Sequence[Message]) -> None:
        self._threads[thread_id].extend(delta)

    def thread_ids(self) -> List[str]:
        return list(self._threads)


class RedisCheckpointStore:
    """Redis-backed history: one list per thread, one JSON message per entry.

    ``RPUSH`` appends atomically, so a save never reorders or drops earlier
    entries. Concurrent saves for the same thread are not serialized.
    """

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        ttl_seconds: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        if redis_client is not None:
            self.redis = redis_client
        else:
            settings = settings or get_settings()
            self.redis = Redis.from_url(settings.redis_url, decode_responses=True)
            if ttl_seconds is None:
                ttl_seconds = settings.checkpoint_ttl_seconds
        self.ttl_seconds = ttl_seconds
        self.logger = logging.getLogger("inventory_agent.services.checkpoint")

    async def load(self, thread_id: str) -> Tuple[Message, ...]:
        raw_entries = await asyncio.to_thread(self.redis.lrange, thread_key(thread_id), 0, -1)
        return tuple(Message.model_validate_json(raw) for raw in raw_entries)

    async def save(self, thread_id: str, delta: Sequence[Message]) -> None:
        if not delta:
            return
        await asyncio.to_thread(self._append, thread_id, [m.model_dump_json() for m in delta])
        self.logger.debug(
            "Saved thread checkpoint",
            extra={"thread_id": thread_id, "messages": len(delta)},
        )

    def _append(self, thread_id: str, payloads: List[str]) -> None:
        key = thread_key(thread_id)
        self.redis.rpush(key, *payloads)
        if self.ttl_seconds:
            self.redis.expire(key, self.ttl_seconds)


def create_checkpoint_store(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    backend = (settings.checkpoint_backend or "memory").lower()
    if backend == "redis":
        return RedisCheckpointStore(settings=settings)
    if backend != "memory":
        raise ValueError(f"Unknown checkpoint backend: {settings.checkpoint_backend}")
    return InMemoryCheckpointStore()
