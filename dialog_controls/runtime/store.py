"""
Session State Storage
=====================

Where the flat control-state map and the turn context live between turns.

Two records are kept per session:
    - the state map: control id -> serializable state
    - the context: ``{"turn_number": int}``

Usage:
    store = RedisStateStore(redis_url="redis://localhost:6379/0")

    state_map = await store.load_state_map("session-1")
    await store.save_state_map("session-1", {"age": {"value": 16}})
"""

from __future__ import annotations

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis.asyncio as redis
import structlog

from ..config import get_settings

logger = structlog.get_logger(__name__)

STATE_MAP = "state"
CONTEXT = "context"


class StateStore(ABC):
    """Abstract base class for session state storage."""

    @abstractmethod
    async def load_state_map(self, session_id: str) -> Dict[str, Any]:
        """Load the control-state map. Returns ``{}`` for a new session."""
        pass

    @abstractmethod
    async def save_state_map(self, session_id: str, state_map: Dict[str, Any]) -> None:
        """Replace the stored control-state map."""
        pass

    @abstractmethod
    async def load_context(self, session_id: str) -> Dict[str, Any]:
        """Load the turn context. Returns ``{"turn_number": 0}`` for a new session."""
        pass

    @abstractmethod
    async def save_context(self, session_id: str, context: Dict[str, Any]) -> None:
        """Replace the stored turn context."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass


def new_context() -> Dict[str, Any]:
    return {"turn_number": 0}


class InMemoryStateStore(StateStore):
    """In-memory store for tests and single-process hosts.

    Warning: state is lost on restart and not shared between processes.
    Use RedisStateStore in production.
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def _get(self, session_id: str, kind: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._records.get(f"{session_id}:{kind}")
            return copy.deepcopy(record) if record is not None else None

    async def _put(self, session_id: str, kind: str, value: Dict[str, Any]) -> None:
        async with self._lock:
            self._records[f"{session_id}:{kind}"] = copy.deepcopy(value)

    async def load_state_map(self, session_id: str) -> Dict[str, Any]:
        return await self._get(session_id, STATE_MAP) or {}

    async def save_state_map(self, session_id: str, state_map: Dict[str, Any]) -> None:
        await self._put(session_id, STATE_MAP, state_map)

    async def load_context(self, session_id: str) -> Dict[str, Any]:
        return await self._get(session_id, CONTEXT) or new_context()

    async def save_context(self, session_id: str, context: Dict[str, Any]) -> None:
        await self._put(session_id, CONTEXT, context)

    def clear(self) -> None:
        self._records.clear()


class RedisStateStore(StateStore):
    """Redis-backed store. Values are JSON strings with a sliding TTL.

    Example:
        store = RedisStateStore(
            redis_url="redis://localhost:6379/0",
            key_prefix="my-skill",
            ttl_seconds=3600,
        )
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        client: Optional["redis.Redis"] = None,
    ):
        """Initialize the store.

        Args:
            redis_url: Redis connection URL. Defaults to ``Settings.redis_url``.
            key_prefix: Prefix for Redis keys. Defaults to ``Settings.state_key_prefix``.
            ttl_seconds: Expiry applied on every save. Defaults to ``Settings.state_ttl_seconds``.
            client: Pre-built ``redis.asyncio`` client, mainly for tests.
        """
        settings = get_settings()
        self._redis_url = redis_url or settings.redis_url
        self._key_prefix = key_prefix or settings.state_key_prefix
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.state_ttl_seconds
        self._redis: Optional["redis.Redis"] = client

    def _client(self) -> "redis.Redis":
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_state_store_connected", url=self._redis_url)
        return self._redis

    def _key(self, session_id: str, kind: str) -> str:
        return f"{self._key_prefix}:{session_id}:{kind}"

    async def _get(self, session_id: str, kind: str) -> Optional[Dict[str, Any]]:
        raw = await self._client().get(self._key(session_id, kind))
        if raw is None:
            return None
        return json.loads(raw)

    async def _put(self, session_id: str, kind: str, value: Dict[str, Any]) -> None:
        await self._client().set(self._key(session_id, kind), json.dumps(value), ex=self._ttl_seconds)

    async def load_state_map(self, session_id: str) -> Dict[str, Any]:
        return await self._get(session_id, STATE_MAP) or {}

    async def save_state_map(self, session_id: str, state_map: Dict[str, Any]) -> None:
        await self._put(session_id, STATE_MAP, state_map)

    async def load_context(self, session_id: str) -> Dict[str, Any]:
        return await self._get(session_id, CONTEXT) or new_context()

    async def save_context(self, session_id: str, context: Dict[str, Any]) -> None:
        await self._put(session_id, CONTEXT, context)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


def create_state_store(redis_url: Optional[str] = None) -> StateStore:
    """Redis store when a URL is given, otherwise in-memory."""
    if redis_url:
        return RedisStateStore(redis_url=redis_url)
    return InMemoryStateStore()
