"""
积分模型模块

定义积分账户和积分流水。
"""
from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id
from nexus.enums import PointTransactionType

from .base import utc_now


class UserPoints(SQLModel, table=True):
    """
    用户积分账户模型

    每个用户一条记录。余额只能通过相对更新修改
    （balance = balance + :delta），数据库层面的 CHECK 约束保证余额不为负。

    字段说明：
    - user_id: 用户 ID（唯一，外键关联 users 表）
    - balance: 当前积分余额
    - updated_at: 最后更新时间
    """
    __tablename__ = "user_points"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_user_points_balance_non_negative"),)

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("users.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
            unique=True,
        )
    )
    balance: int = Field(default=0)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class PointTransaction(SQLModel, table=True):
    """
    积分交易记录模型

    只追加，不修改。每次余额变动都在同一个事务里写入一条流水。

    字段说明：
    - type: earn / spend / grant
    - amount: 变动数额（负数表示扣除）
    - balance_after: 变动后的余额
    - reason: 变动原因（如 "game_play"、"unlock_post"）
    - reference_id: 关联对象 ID（游戏 ID、帖子 ID 等）
    """
    __tablename__ = "point_transactions"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    type: PointTransactionType = Field(sa_column=Column(String(16), nullable=False))
    amount: int = Field(nullable=False)
    balance_after: int = Field(nullable=False)
    reason: str | None = Field(default=None, max_length=64)
    reference_id: int | None = Field(default=None, sa_column=Column(BigInteger, nullable=True))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
