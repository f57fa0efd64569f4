"""Snapshot persistence.

A store holds whole snapshot payloads under a key and notifies subscribers
when the value under a key changes. Values are never partially updated.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable
from uuid import uuid4

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from bracket_live.config import Settings
from bracket_live.utils.async_utils import cancel_task_safe, create_safe_task
from bracket_live.utils.errors import ErrorCode, PersistenceError
from bracket_live.utils.json_utils import json_dumps, json_loads

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, Any], Awaitable[None]]


class SnapshotStore(ABC):
    """Key/value snapshot store with change notification."""

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[str, ChangeCallback]] = {}

    @abstractmethod
    async def get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        self._subscribers.clear()

    def subscribe(self, key: str, callback: ChangeCallback) -> Callable[[], None]:
        """Call `callback(key, value)` after each change; value is None on delete.

        Returns:
            A callable that removes the subscription
        """
        subscription_id = str(uuid4())
        self._subscribers.setdefault(key, {})[subscription_id] = callback

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks is None:
                return
            callbacks.pop(subscription_id, None)
            if not callbacks:
                del self._subscribers[key]

        return unsubscribe

    async def _notify(self, key: str, value: Any | None) -> None:
        for callback in list(self._subscribers.get(key, {}).values()):
            try:
                await callback(key, value)
            except Exception:
                logger.exception(f"Store subscriber failed for key {key}")


class MemorySnapshotStore(SnapshotStore):
    """Process-local store, used when no Redis URL is configured."""

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json_loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        # Stored serialized so callers never share mutable state with the store
        self._data[key] = json_dumps(value)
        await self._notify(key, json_loads(self._data[key]))

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
        await self._notify(key, None)


class RedisSnapshotStore(SnapshotStore):
    """Redis-backed store; changes fan out to every instance via pub/sub."""

    CHANNEL_PREFIX = "bracket:changes:"

    def __init__(self, client: Redis):
        super().__init__()
        self.client = client
        self._instance_id = str(uuid4())[:8]
        self._listener_task: asyncio.Task | None = None
        self._pubsub: Any = None

    @classmethod
    def from_url(cls, url: str) -> RedisSnapshotStore:
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise PersistenceError(
                f"Failed to read {key}",
                code=ErrorCode.SNAPSHOT_READ_FAILED,
                details={"reason": str(e)},
            )
        if raw is None:
            return None
        try:
            return json_loads(raw)
        except ValueError as e:
            raise PersistenceError(
                f"Stored value for {key} is not valid JSON",
                code=ErrorCode.SNAPSHOT_READ_FAILED,
                details={"reason": str(e)},
            )

    async def set(self, key: str, value: Any) -> None:
        payload = json_dumps(value)
        try:
            await self.client.set(key, payload)
            await self.client.publish(self.CHANNEL_PREFIX + key, payload)
        except RedisError as e:
            raise PersistenceError(f"Failed to write {key}", details={"reason": str(e)})

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
            await self.client.publish(self.CHANNEL_PREFIX + key, "null")
        except RedisError as e:
            raise PersistenceError(f"Failed to delete {key}", details={"reason": str(e)})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start listening for change notifications."""
        if self._listener_task is not None:
            return
        self._pubsub = self.client.pubsub()
        await self._pubsub.psubscribe(self.CHANNEL_PREFIX + "*")
        self._listener_task = create_safe_task(self._listen(), name="snapshot_store_listener")
        logger.info(f"RedisSnapshotStore listening (instance: {self._instance_id})")

    async def close(self) -> None:
        await cancel_task_safe(self._listener_task)
        self._listener_task = None
        if self._pubsub is not None:
            try:
                await self._pubsub.punsubscribe(self.CHANNEL_PREFIX + "*")
                await self._pubsub.aclose()
            except RedisError as e:
                logger.debug(f"Error closing pub/sub: {e}")
            self._pubsub = None
        await self.client.aclose()
        await super().close()

    async def _listen(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message and message["type"] == "pmessage":
                    await self._handle_message(message)
            except RedisError as e:
                logger.error(f"Pub/sub listener error: {e}")
                await asyncio.sleep(1)

    async def _handle_message(self, message: dict[str, Any]) -> None:
        channel = str(message.get("channel", ""))
        key = channel[len(self.CHANNEL_PREFIX):]
        try:
            value = json_loads(message.get("data") or "null")
        except ValueError:
            logger.warning(f"Ignoring malformed change notification on {channel}")
            return
        await self._notify(key, value)


def build_store(settings: Settings) -> SnapshotStore:
    """Redis store when a URL is configured, in-memory otherwise."""
    if settings.redis_url:
        return RedisSnapshotStore.from_url(settings.redis_url)
    return MemorySnapshotStore()
