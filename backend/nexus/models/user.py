"""
用户模型模块

定义用户及其角色授权的数据库模型。
"""
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlmodel import Field, SQLModel

from nexus.core.snowflake import generate_id
from nexus.enums import MusicProvider, SubscriptionStatus, UserRole

from .base import utc_now


class User(SQLModel, table=True):
    """
    用户模型

    用户名 + 密码登录。积分余额不放在用户表上，由 user_points 表单独维护，
    只能通过积分账本修改。

    字段说明：
    - id: 主键，Snowflake ID
    - username: 登录名（唯一且建立索引）
    - password_hash: bcrypt 哈希
    - display_name: 展示名（聊天、作业帖子中显示）
    - avatar_url: 头像地址（可选）
    - music_service: 偏好的音乐平台（可选）
    - subscription_status / subscription_expires_at: 订阅状态与到期时间，
      由支付回调更新
    """
    __tablename__ = "users"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    username: str = Field(
        max_length=32,
        sa_column=Column(String(32), unique=True, index=True, nullable=False),
    )
    password_hash: str = Field(max_length=255)
    display_name: str = Field(max_length=64)
    avatar_url: str | None = Field(default=None, max_length=1024)
    music_service: MusicProvider | None = Field(
        default=None, sa_column=Column(String(32), nullable=True)
    )

    subscription_status: SubscriptionStatus = Field(
        default=SubscriptionStatus.inactive,
        sa_column=Column(String(16), nullable=False, default=SubscriptionStatus.inactive.value),
    )
    subscription_expires_at: datetime | None = Field(
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


class UserRoleGrant(SQLModel, table=True):
    """
    用户角色授权

    权限的可信来源。令牌里的 role 声明只用于界面展示，
    管理员操作每次都要回查这张表。
    """
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    role: UserRole = Field(sa_column=Column(String(16), nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
