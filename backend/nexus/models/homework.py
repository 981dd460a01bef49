"""
作业分享模型模块

包括作业帖子、回复、点赞以及付费解锁记录。
"""
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id

from .base import utc_now


class HomeworkPost(SQLModel, table=True):
    """
    作业帖子

    points_required 为 0 表示免费帖子；大于 0 时，非作者需要花积分解锁后
    才能看到描述、图片和回复。价格在创建后不可修改。
    """
    __tablename__ = "homework_posts"
    __table_args__ = (
        CheckConstraint("points_required >= 0", name="ck_homework_posts_price_non_negative"),
        CheckConstraint("likes >= 0", name="ck_homework_posts_likes_non_negative"),
    )

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    author_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    title: str = Field(max_length=200)
    description: str = Field(sa_column=Column(Text, nullable=False))
    image_url: str | None = Field(default=None, max_length=1024)
    points_required: int = Field(default=0)
    likes: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class HomeworkReply(SQLModel, table=True):
    """作业帖子的回复"""
    __tablename__ = "homework_replies"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    post_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("homework_posts.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    author_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class HomeworkLike(SQLModel, table=True):
    """点赞记录，每个用户对每个帖子最多一条"""
    __tablename__ = "homework_likes"
    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_homework_likes_user_post"),)

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    post_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("homework_posts.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class UnlockRecord(SQLModel, table=True):
    """
    帖子解锁记录

    (user_id, post_id) 唯一约束保证同一用户对同一帖子最多付费一次，
    并发的重复购买由数据库拒绝。记录创建后不可修改，存在即永久可见。

    字段说明：
    - points_spent: 解锁时实际扣除的积分
    - unlocked_at: 解锁时间
    """
    __tablename__ = "user_unlocked_posts"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_user_unlocked_posts_user_post"),
    )

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    post_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("homework_posts.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    points_spent: int = Field(default=0)
    unlocked_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
