"""
聊天消息广播

消息先写入数据库，再通过广播中心推送给订阅了同一房间的连接。
两种实现：
- InMemoryChatHub: 单进程内广播（本地开发、测试）
- RedisChatHub: 通过 Redis pub/sub 在多个进程之间广播

REST 路由是同步函数，运行在线程池里，所以 publish 是同步方法，
并且可以从任意线程调用；订阅方在事件循环里异步读取。
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any

import redis

from nexus.core.config import settings
from nexus.core.redis import get_redis, new_async_redis
from nexus.models import ChatMessage, as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatEvent:
    """广播给客户端的一条聊天消息"""
    id: int
    room: str
    user_id: int
    display_name: str
    content: str
    created_at: datetime

    @classmethod
    def from_message(cls, message: ChatMessage) -> ChatEvent:
        return cls(
            id=message.id,
            room=message.room,
            user_id=message.user_id,
            display_name=message.display_name,
            content=message.content,
            created_at=as_utc(message.created_at),  # type: ignore[arg-type]
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "room": self.room,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ChatEvent:
        return cls(
            id=int(data["id"]),
            room=str(data["room"]),
            user_id=int(data["user_id"]),
            display_name=str(data["display_name"]),
            content=str(data["content"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class HubSubscription(ABC):
    room: str

    @abstractmethod
    async def get(self, timeout: float | None = None) -> ChatEvent | None:
        """等待下一条消息，超时返回 None"""

    @abstractmethod
    async def close(self) -> None:
        """取消订阅并释放资源，可重复调用"""


class ChatHub(ABC):
    @abstractmethod
    async def subscribe(self, room: str) -> HubSubscription: ...

    @abstractmethod
    def publish(self, event: ChatEvent) -> None: ...


# ============================================================
# 进程内广播
# ============================================================


class _QueueSubscription(HubSubscription):
    def __init__(self, hub: InMemoryChatHub, room: str, loop: asyncio.AbstractEventLoop) -> None:
        self.room = room
        self._hub = hub
        self._loop = loop
        self._queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
        self._closed = False

    def deliver(self, event: ChatEvent) -> None:
        # publish may run in a worker thread
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self, timeout: float | None = None) -> ChatEvent | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub.remove(self)


class InMemoryChatHub(ChatHub):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, set[_QueueSubscription]] = {}

    async def subscribe(self, room: str) -> HubSubscription:
        sub = _QueueSubscription(self, room, asyncio.get_running_loop())
        with self._lock:
            self._subscriptions.setdefault(room, set()).add(sub)
        return sub

    def remove(self, sub: _QueueSubscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(sub.room)
            if subs is None:
                return
            subs.discard(sub)
            if not subs:
                del self._subscriptions[sub.room]

    def publish(self, event: ChatEvent) -> None:
        with self._lock:
            targets = list(self._subscriptions.get(event.room, ()))
        for sub in targets:
            try:
                sub.deliver(event)
            except RuntimeError:
                # event loop already closed
                self.remove(sub)

    def subscriber_count(self, room: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(room, ()))


# ============================================================
# Redis pub/sub 广播
# ============================================================


def _channel(room: str) -> str:
    return f"chat:{room}"


class _RedisSubscription(HubSubscription):
    def __init__(self, room: str, client: Any, pubsub: Any) -> None:
        self.room = room
        self._client = client
        self._pubsub = pubsub
        self._closed = False

    async def get(self, timeout: float | None = None) -> ChatEvent | None:
        message = await self._pubsub.get_message(
            ignore_subscribe_messages=True, timeout=timeout if timeout is not None else 1.0
        )
        if not message or message.get("type") != "message":
            return None
        try:
            return ChatEvent.from_payload(json.loads(message["data"]))
        except (ValueError, KeyError, TypeError):
            logger.warning("Dropping malformed chat event on %s", _channel(self.room))
            return None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(_channel(self.room))
        finally:
            await self._pubsub.aclose()
            await self._client.aclose()


class RedisChatHub(ChatHub):
    async def subscribe(self, room: str) -> HubSubscription:
        client = new_async_redis()
        pubsub = client.pubsub()
        await pubsub.subscribe(_channel(room))
        return _RedisSubscription(room, client, pubsub)

    def publish(self, event: ChatEvent) -> None:
        try:
            get_redis().publish(_channel(event.room), json.dumps(event.to_payload()))
        except redis.RedisError:
            # the message is already stored; clients pick it up on the next snapshot
            logger.exception("Failed to broadcast chat message %s", event.id)


@lru_cache(maxsize=1)
def get_chat_hub() -> ChatHub:
    if settings.CHAT_BROKER == "redis":
        return RedisChatHub()
    return InMemoryChatHub()
