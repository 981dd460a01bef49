"""
单个聊天连接的消息流

状态：Disconnected -> Subscribing -> Live -> Disconnected

open() 先订阅广播，再加载最近的历史消息作为基线快照。
加载快照期间到达的新消息留在订阅队列里，快照返回之后才会被取出；
快照里已有的消息和已经投递过的消息按 id 去重。
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable

from nexus.enums import ChatFeedState
from nexus.services.chat_hub import ChatEvent, ChatHub, HubSubscription

logger = logging.getLogger(__name__)

BaselineLoader = Callable[[], Awaitable[list[ChatEvent]]]


class ChatFeed:
    def __init__(
        self,
        hub: ChatHub,
        room: str,
        load_baseline: BaselineLoader,
        *,
        seen_limit: int = 1000,
    ) -> None:
        self.hub = hub
        self.room = room
        self.state = ChatFeedState.disconnected
        self._load_baseline = load_baseline
        self._subscription: HubSubscription | None = None
        self._seen: set[int] = set()
        self._seen_order: deque[int] = deque()
        self._seen_limit = seen_limit

    def _remember(self, event_id: int) -> None:
        self._seen.add(event_id)
        self._seen_order.append(event_id)
        while len(self._seen_order) > self._seen_limit:
            self._seen.discard(self._seen_order.popleft())

    async def open(self) -> list[ChatEvent]:
        """订阅并返回基线快照（按时间正序）"""
        if self.state != ChatFeedState.disconnected:
            raise RuntimeError(f"Chat feed for {self.room} is already {self.state.value}")
        self.state = ChatFeedState.subscribing
        try:
            self._subscription = await self.hub.subscribe(self.room)
            snapshot = await self._load_baseline()
        except BaseException:
            await self.close()
            raise
        for event in snapshot:
            self._remember(event.id)
        self.state = ChatFeedState.live
        logger.debug("Chat feed live in %s with %s baseline messages", self.room, len(snapshot))
        return snapshot

    async def next_event(self, timeout: float | None = None) -> ChatEvent | None:
        """
        取下一条未投递过的消息

        超时返回 None。只能在 Live 状态调用。
        """
        if self.state != ChatFeedState.live or self._subscription is None:
            raise RuntimeError("Chat feed is not live")
        while True:
            event = await self._subscription.get(timeout)
            if event is None:
                return None
            if event.id in self._seen:
                continue
            self._remember(event.id)
            return event

    async def close(self) -> None:
        subscription, self._subscription = self._subscription, None
        self.state = ChatFeedState.disconnected
        if subscription is not None:
            await subscription.close()
