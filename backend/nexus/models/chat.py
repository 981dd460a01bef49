"""
聊天消息模型模块
"""
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, String
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id

from .base import utc_now


class ChatMessage(SQLModel, table=True):
    """
    聊天消息

    只追加，不支持编辑和删除。同一房间内按 (created_at, id) 排序。

    字段说明：
    - room: 房间标识（公共房间如 "global"，私聊房间如 "dm:1:2"）
    - user_id: 发送者
    - display_name: 发送时的展示名快照
    - content: 消息内容，去除首尾空白后 1-500 个字符
    """
    __tablename__ = "chat_messages"
    __table_args__ = (Index("idx_chat_messages_room_created", "room", "created_at"),)

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    room: str = Field(sa_column=Column(String(64), nullable=False))
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    display_name: str = Field(max_length=64)
    content: str = Field(max_length=500)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
