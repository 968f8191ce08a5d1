from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from .errors import StorageFailure
from .models import ConversationTurn, SessionKey


DEFAULT_SESSION_TTL = 3600


class SessionStore(ABC):
    """TTL-bounded conversation log keyed by (agent, caller).

    Each primitive is atomic on its own; nothing serializes a whole chat turn, so
    two turns racing on one key are recorded in the order their appends land.
    """

    ttl: int = DEFAULT_SESSION_TTL

    async def append(self, key: SessionKey, turn: ConversationTurn) -> None:
        await self.extend(key, [turn])

    @abstractmethod
    async def extend(self, key: SessionKey, turns: Iterable[ConversationTurn]) -> None:
        """Append turns in order and refresh the key's expiry."""

    @abstractmethod
    async def read_all(self, key: SessionKey) -> List[ConversationTurn]:
        """Turns oldest first; empty when the key is absent or expired."""

    @abstractmethod
    async def clear(self, key: SessionKey) -> None:
        """Drop the key. Clearing an absent key is not an error."""


class InMemorySessionStore(SessionStore):
    """Process-local store with TTL support.

    Expired keys are dropped when touched, and writes sweep the whole map at
    most once per ``sweep_interval`` seconds so abandoned sessions do not pile up.
    """

    def __init__(
        self,
        ttl: int = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._next_sweep = clock() + sweep_interval

    def _drop_expired(self) -> int:
        # caller holds the lock
        now = self._clock()
        expired = [name for name, entry in self._sessions.items() if now > entry["expires_at"]]
        for name in expired:
            del self._sessions[name]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    def _live_entry(self, name: str) -> Optional[Dict[str, Any]]:
        entry = self._sessions.get(name)
        if entry is None:
            return None
        if self._clock() > entry["expires_at"]:
            del self._sessions[name]
            return None
        return entry

    async def extend(self, key: SessionKey, turns: Iterable[ConversationTurn]) -> None:
        turns = list(turns)
        async with self._lock:
            if self._clock() >= self._next_sweep:
                dropped = self._drop_expired()
                if dropped:
                    logger.debug(f"session_sweep | dropped={dropped} remaining={len(self._sessions)}")
            name = str(key)
            entry = self._live_entry(name)
            if entry is None:
                entry = {"turns": []}
                self._sessions[name] = entry
            entry["turns"].extend(turns)
            entry["expires_at"] = self._clock() + self.ttl
        logger.debug(f"session_append | key={key} added={len(turns)} total={len(entry['turns'])}")

    async def read_all(self, key: SessionKey) -> List[ConversationTurn]:
        async with self._lock:
            entry = self._live_entry(str(key))
            return list(entry["turns"]) if entry else []

    async def clear(self, key: SessionKey) -> None:
        async with self._lock:
            self._sessions.pop(str(key), None)
        logger.info(f"session_clear | key={key}")

    async def purge_expired(self) -> int:
        """Evict expired sessions and return how many were dropped."""
        async with self._lock:
            return self._drop_expired()

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            now = self._clock()
            active = sum(1 for entry in self._sessions.values() if now <= entry["expires_at"])
            return {"total_keys": len(self._sessions), "active_keys": active, "expired_keys": len(self._sessions) - active}


class RedisSessionStore(SessionStore):
    """Redis list per session, stored newest first (LPUSH) and reversed on read."""

    def __init__(self, client: Any, ttl: int = DEFAULT_SESSION_TTL):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = DEFAULT_SESSION_TTL) -> "RedisSessionStore":
        logger.debug(f"Connecting session store to redis url={url.split('@')[-1]}")
        return cls(aioredis.from_url(url, decode_responses=True), ttl=ttl)

    async def extend(self, key: SessionKey, turns: Iterable[ConversationTurn]) -> None:
        payloads = [json.dumps(t.to_dict(), ensure_ascii=False) for t in turns]
        if not payloads:
            return
        name = str(key)
        try:
            # MULTI/EXEC so the list never exists without its expiry
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lpush(name, *payloads)
                pipe.expire(name, self.ttl)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"session_append_failed | key={name} err={e}")
            raise StorageFailure(f"append to {name} failed") from e
        logger.debug(f"session_append | key={name} added={len(payloads)}")

    async def read_all(self, key: SessionKey) -> List[ConversationTurn]:
        name = str(key)
        try:
            raw = await self.client.lrange(name, 0, -1)
        except RedisError as e:
            logger.error(f"session_read_failed | key={name} err={e}")
            raise StorageFailure(f"read of {name} failed") from e
        try:
            turns = [ConversationTurn.from_dict(json.loads(item)) for item in raw]
        except (ValueError, TypeError) as e:
            raise StorageFailure(f"unreadable turn in {name}") from e
        turns.reverse()
        return turns

    async def clear(self, key: SessionKey) -> None:
        name = str(key)
        try:
            await self.client.delete(name)
        except RedisError as e:
            logger.error(f"session_clear_failed | key={name} err={e}")
            raise StorageFailure(f"clear of {name} failed") from e
        logger.info(f"session_clear | key={name}")


def build_session_store(redis_url: Optional[str] = None, ttl: int = DEFAULT_SESSION_TTL) -> SessionStore:
    if redis_url:
        return RedisSessionStore.from_url(redis_url, ttl=ttl)
    logger.info("REDIS_URL not set; using in-memory session store")
    return InMemorySessionStore(ttl=ttl)
