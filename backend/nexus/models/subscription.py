"""
订阅模型模块

定义订阅记录和支付回调事件。
"""
from datetime import datetime

from sqlalchemy import JSON, BigInteger, Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id
from nexus.enums import SubscriptionStatus

from .base import utc_now


class Subscription(SQLModel, table=True):
    """
    订阅记录模型

    每个用户一条，由支付服务的 webhook 更新。用户表上的
    subscription_status / subscription_expires_at 与此同步，会话校验只读用户表。

    字段说明：
    - provider_customer_id: 支付服务中的客户 ID
    - price_id: 订阅的价格方案
    - status: 订阅状态
    - current_period_end: 当前周期结束时间
    - cancelled_at: 取消时间
    """
    __tablename__ = "subscriptions"
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
    provider_customer_id: str | None = Field(default=None, max_length=128)
    price_id: str = Field(max_length=64)
    status: SubscriptionStatus = Field(sa_column=Column(String(16), nullable=False))
    current_period_end: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    cancelled_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class PaymentEvent(SQLModel, table=True):
    """
    支付回调事件

    event_id 唯一，用于回调去重和审计。
    """
    __tablename__ = "payment_events"

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    event_id: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))
    event_type: str = Field(max_length=64)
    payload: dict | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
