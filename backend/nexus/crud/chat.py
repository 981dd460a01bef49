"""聊天消息 CRUD 操作"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from nexus.api.errors import PermissionDenied, PersistenceError, ValidationError
from nexus.core.config import settings
from nexus.models import ChatMessage, User
from nexus.services.config_service import public_room_ids

logger = logging.getLogger(__name__)

DM_PREFIX = "dm:"


def dm_room(user_a: int, user_b: int) -> str:
    """两个用户之间的私聊房间名，ID 小的在前"""
    if user_a == user_b:
        raise ValidationError("Cannot open a private room with yourself", code=400302)
    low, high = sorted((user_a, user_b))
    return f"{DM_PREFIX}{low}:{high}"


def _dm_members(room: str) -> tuple[int, int] | None:
    parts = room[len(DM_PREFIX):].split(":")
    if len(parts) != 2:
        return None
    try:
        low, high = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if low >= high:
        return None
    return low, high


def check_room_access(*, room: str, user_id: int) -> None:
    """
    校验用户能否读写房间

    公共房间来自门户配置，任何已订阅用户可进入；
    私聊房间 dm:<low>:<high> 只有两位成员可进入。

    Raises:
        ValidationError: 房间不存在
        PermissionDenied: 不是私聊房间成员
    """
    if room.startswith(DM_PREFIX):
        members = _dm_members(room)
        if members is None:
            raise ValidationError("Unknown chat room", code=400303, field="room")
        if user_id not in members:
            raise PermissionDenied("Not a member of this room")
        return
    if room not in public_room_ids():
        raise ValidationError("Unknown chat room", code=400303, field="room")


def normalize_content(content: str) -> str:
    """
    去除首尾空白并校验长度

    这是写入前的最终校验，请求模型上的长度限制可以被绕过，这里不能。
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty", code=400301, field="content")
    if len(text) > settings.CHAT_MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message cannot exceed {settings.CHAT_MESSAGE_MAX_LENGTH} characters",
            code=400301,
            field="content",
        )
    return text


def create_message(*, session: Session, room: str, author: User, content: str) -> ChatMessage:
    text = normalize_content(content)
    message = ChatMessage(
        room=room,
        user_id=author.id,
        display_name=author.display_name,
        content=text,
    )
    session.add(message)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to save chat message in room %s", room)
        raise PersistenceError()
    session.refresh(message)
    return message


def list_recent(*, session: Session, room: str, limit: int) -> list[ChatMessage]:
    """房间最近 limit 条消息，按时间正序返回"""
    stmt = (
        select(ChatMessage)
        .where(ChatMessage.room == room)
        .order_by(col(ChatMessage.created_at).desc(), col(ChatMessage.id).desc())
        .limit(limit)
    )
    rows = list(session.exec(stmt).all())
    rows.reverse()
    return rows
