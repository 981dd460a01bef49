"""
活动目录模型模块

游戏、周边商品、音乐嵌入。除首次玩游戏会奖励积分外，
这些目录与积分账本没有其他关联。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id
from nexus.enums import MusicProvider

from .base import utc_now


class Game(SQLModel, table=True):
    """
    小游戏

    字段说明：
    - game_url: 游戏地址（https，前端以 iframe 打开）
    - thumbnail_url: 封面图
    - points_reward: 首次游玩奖励的积分，0 表示不奖励
    """
    __tablename__ = "games"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    title: str = Field(max_length=128)
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    game_url: str = Field(max_length=1024)
    thumbnail_url: str | None = Field(default=None, max_length=1024)
    points_reward: int = Field(default=10)
    created_by: int | None = Field(
        default=None,
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class GamePlay(SQLModel, table=True):
    """
    游戏首次游玩记录

    (user_id, game_id) 唯一，插入成功才发放积分，重复游玩不再奖励。
    """
    __tablename__ = "game_plays"
    __table_args__ = (UniqueConstraint("user_id", "game_id", name="uq_game_plays_user_game"),)

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    game_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("games.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    points_awarded: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class MerchItem(SQLModel, table=True):
    """周边商品"""
    __tablename__ = "merch_items"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    name: str = Field(max_length=128)
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    price: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    stock: int = Field(default=0)
    image_urls: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class MusicEmbed(SQLModel, table=True):
    """
    音乐嵌入

    只保存平台和原始链接，iframe 标记在读取时由 embeds 服务按平台模板生成，
    不保存、也不回显用户提交的任何 HTML。
    """
    __tablename__ = "music_embeds"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    owner_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    title: str = Field(max_length=128)
    provider: MusicProvider = Field(sa_column=Column(String(32), nullable=False))
    source_url: str = Field(max_length=1024)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
