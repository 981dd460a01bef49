"""
聊天路由模块

REST:
- GET  /chat/rooms: 公共房间列表
- POST /chat/rooms/direct/{user_id}: 获取与某个用户的私聊房间名
- GET  /chat/rooms/{room}/messages: 最近的消息（基线快照）
- POST /chat/rooms/{room}/messages: 发送消息

WebSocket /chat/rooms/{room}/ws?token=<access_token>

服务端 -> 客户端：
    {"type": "snapshot", "room": ..., "messages": [...]}   连接后第一条
    {"type": "message", "message": {...}}                  新消息
    {"type": "ack", "id": ...}                             发送成功
    {"type": "error", "code": ..., "message": ..., "data": ...}
    {"type": "pong"}

客户端 -> 服务端：
    {"type": "send", "content": "..."}
    {"type": "ping"}
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from nexus.api.deps import SessionDep, SubscribedUser
from nexus.api.errors import AppError, AuthRequired, NotFound, SubscriptionRequired
from nexus.api.schemas import (
    ApiEnvelope,
    ChatMessageCreateRequest,
    ChatMessagePublic,
    ChatRoomPublic,
    DirectRoomData,
)
from nexus.core.config import settings
from nexus.crud import chat as chat_crud
from nexus.models import ChatMessage, User
from nexus.services.chat_feed import ChatFeed
from nexus.services.chat_hub import ChatEvent, get_chat_hub
from nexus.services.config_service import public_rooms
from nexus.services.session_gate import current_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _message_public(message: ChatMessage) -> ChatMessagePublic:
    return ChatMessagePublic(
        id=message.id,
        room=message.room,
        user_id=message.user_id,
        display_name=message.display_name,
        content=message.content,
        created_at=message.created_at,
    )


def post_message(session: Session, *, room: str, author: User, content: str) -> ChatMessage:
    """写入消息后广播给房间内的连接"""
    message = chat_crud.create_message(session=session, room=room, author=author, content=content)
    get_chat_hub().publish(ChatEvent.from_message(message))
    return message


@router.get("/rooms", response_model=ApiEnvelope)
def rooms(_: SubscribedUser) -> ApiEnvelope:
    return ApiEnvelope(data=[ChatRoomPublic(id=r["id"], name=r["name"]) for r in public_rooms()])


@router.post("/rooms/direct/{user_id}", response_model=ApiEnvelope)
def direct_room(session: SessionDep, current_user: SubscribedUser, user_id: int) -> ApiEnvelope:
    if not session.get(User, user_id):
        raise NotFound("User not found", code=404001)
    return ApiEnvelope(data=DirectRoomData(room=chat_crud.dm_room(current_user.id, user_id)))


@router.get("/rooms/{room}/messages", response_model=ApiEnvelope)
def list_messages(
    session: SessionDep,
    current_user: SubscribedUser,
    room: str,
    limit: int = Query(default=settings.CHAT_HISTORY_LIMIT, ge=1, le=200),
) -> ApiEnvelope:
    """
    最近的消息，按时间正序

    请求路径: GET /api/v1/chat/rooms/{room}/messages?limit=50
    """
    chat_crud.check_room_access(room=room, user_id=current_user.id)
    rows = chat_crud.list_recent(session=session, room=room, limit=limit)
    return ApiEnvelope(data=[_message_public(m) for m in rows])


@router.post("/rooms/{room}/messages", response_model=ApiEnvelope)
def create_message(
    session: SessionDep,
    current_user: SubscribedUser,
    room: str,
    body: ChatMessageCreateRequest,
) -> ApiEnvelope:
    """
    发送消息

    请求模型先做长度校验，写入前 crud 层再校验一次。

    请求路径: POST /api/v1/chat/rooms/{room}/messages
    """
    chat_crud.check_room_access(room=room, user_id=current_user.id)
    message = post_message(session, room=room, author=current_user, content=body.content)
    return ApiEnvelope(data=_message_public(message))


# ============================================================
# WebSocket
# ============================================================


def _authorize_socket(session: Session, token: str | None, room: str) -> User:
    ctx = current_session(session=session, token=token)
    if ctx is None:
        raise AuthRequired()
    if not ctx.subscription_active:
        raise SubscriptionRequired()
    chat_crud.check_room_access(room=room, user_id=ctx.user.id)
    return ctx.user


def _close_code(exc: AppError) -> int:
    if exc.status_code == 401:
        return 4401
    if exc.status_code == 403:
        return 4403
    return 4400


def _error_frame(exc: AppError) -> dict[str, Any]:
    return {"type": "error", "code": exc.code, "message": exc.message, "data": exc.data}


async def _forward(websocket: WebSocket, feed: ChatFeed) -> None:
    while True:
        event = await feed.next_event(timeout=1.0)
        if event is not None:
            await websocket.send_json({"type": "message", "message": event.to_payload()})


@router.websocket("/rooms/{room}/ws")
async def chat_socket(websocket: WebSocket, room: str, session: SessionDep) -> None:
    """
    房间实时消息

    先订阅广播再发送快照，快照之后才开始推送新消息；
    断开连接时取消推送任务并取消订阅。
    """
    await websocket.accept()

    token = websocket.query_params.get("token")
    try:
        user = await run_in_threadpool(_authorize_socket, session, token, room)
    except AppError as e:
        await websocket.send_json(_error_frame(e))
        await websocket.close(code=_close_code(e))
        return
    user_id = user.id

    async def load_baseline() -> list[ChatEvent]:
        rows = await run_in_threadpool(
            chat_crud.list_recent, session=session, room=room, limit=settings.CHAT_HISTORY_LIMIT
        )
        return [ChatEvent.from_message(m) for m in rows]

    feed = ChatFeed(get_chat_hub(), room, load_baseline)
    forward_task: asyncio.Task[None] | None = None
    try:
        snapshot = await feed.open()
        await websocket.send_json(
            {"type": "snapshot", "room": room, "messages": [e.to_payload() for e in snapshot]}
        )
        forward_task = asyncio.create_task(_forward(websocket, feed))

        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            if not isinstance(data, dict):
                await websocket.send_json(
                    {"type": "error", "code": 400000, "message": "Invalid message", "data": None}
                )
                continue

            msg_type = data.get("type")
            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif msg_type == "send":
                content = data.get("content")
                try:
                    message = await run_in_threadpool(
                        post_message,
                        session,
                        room=room,
                        author=user,
                        content=content if isinstance(content, str) else "",
                    )
                except AppError as e:
                    await websocket.send_json(_error_frame(e))
                    continue
                await websocket.send_json({"type": "ack", "id": message.id})
            else:
                await websocket.send_json(
                    {
                        "type": "error",
                        "code": 400000,
                        "message": f"Unknown message type: {msg_type}",
                        "data": None,
                    }
                )
    except WebSocketDisconnect:
        logger.debug("Chat socket closed: room=%s user=%s", room, user_id)
    finally:
        if forward_task is not None:
            forward_task.cancel()
            await asyncio.gather(forward_task, return_exceptions=True)
        await feed.close()
