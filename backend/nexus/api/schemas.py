"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
这些模型不是数据库表，只用于 API 数据交换。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nexus.enums import MusicProvider, PointTransactionType, SubscriptionStatus, UserRole

# ============================================================
# 通用响应模型
# ============================================================


class Message(BaseModel):
    message: str


class TokenPayload(BaseModel):
    """
    JWT Token 载荷模型

    sub 为用户 ID；role 只是界面提示，不参与授权判断。
    """
    sub: str | None = None
    role: str | None = None


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 成功时为 "success"
    - data: 业务数据

    示例响应：
        {"code": 0, "message": "success", "data": {...}}
        {"code": 402001, "message": "Insufficient points", "data": {"balance": 20, "required": 30}}
    """
    code: int = 0
    message: str = "success"
    data: Any | None = None


# ============================================================
# 认证与用户
# ============================================================


class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.\-]+$")
    password: str = Field(min_length=8, max_length=128)
    display_name: str = Field(min_length=1, max_length=64)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=128)


class UserProfile(BaseModel):
    id: int
    username: str
    display_name: str
    avatar_url: str | None = None
    music_service: MusicProvider | None = None
    subscription_status: SubscriptionStatus
    subscription_expires_at: datetime | None = None
    points_balance: int


class UserProfileUpdateRequest(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=1024)
    music_service: MusicProvider | None = None


class AuthLoginData(BaseModel):
    access_token: str
    expires_in: int  # 秒
    user: UserProfile


class SessionData(BaseModel):
    """
    当前会话

    authenticated 为 False 时其余字段为空，前端据此跳转登录页。
    """
    authenticated: bool
    user: UserProfile | None = None
    role: UserRole | None = None
    subscription_active: bool = False


# ============================================================
# 积分
# ============================================================


class PointsBalanceData(BaseModel):
    balance: int


class PointTransactionPublic(BaseModel):
    id: int
    type: PointTransactionType
    amount: int  # 负数表示扣除
    balance_after: int
    reason: str | None = None
    reference_id: int | None = None
    created_at: datetime


class PointsTransactionsData(BaseModel):
    data: list[PointTransactionPublic]
    count: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    display_name: str
    total_earned: int


# ============================================================
# 作业分享
# ============================================================


class HomeworkPostCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=10000)
    image_url: str | None = Field(default=None, max_length=1024)
    points_required: int = Field(default=0, ge=0, le=1000)


class HomeworkPostPublic(BaseModel):
    """
    作业帖子

    locked 为 True 时 description / image_url 为空，需要先解锁。
    """
    id: int
    author_id: int
    author_name: str | None = None
    title: str
    description: str | None = None
    image_url: str | None = None
    points_required: int
    likes: int
    locked: bool
    created_at: datetime


class HomeworkPostsData(BaseModel):
    data: list[HomeworkPostPublic]
    count: int


class UnlockData(BaseModel):
    post_id: int
    charged: int
    already_unlocked: bool
    balance: int


class LikeData(BaseModel):
    post_id: int
    likes: int
    liked: bool


class HomeworkReplyCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class HomeworkReplyPublic(BaseModel):
    id: int
    post_id: int
    author_id: int
    content: str
    created_at: datetime


class UploadData(BaseModel):
    key: str
    public_url: str


# ============================================================
# 聊天
# ============================================================


class ChatRoomPublic(BaseModel):
    id: str
    name: str


class ChatMessageCreateRequest(BaseModel):
    # 先去除首尾空白再校验长度
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=500)


class ChatMessagePublic(BaseModel):
    id: int
    room: str
    user_id: int
    display_name: str
    content: str
    created_at: datetime


class DirectRoomData(BaseModel):
    room: str


# ============================================================
# 活动目录
# ============================================================


class GameCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    game_url: str = Field(min_length=1, max_length=1024)
    thumbnail_url: str | None = Field(default=None, max_length=1024)
    points_reward: int | None = Field(default=None, ge=0, le=1000)  # 为空时取门户配置的默认奖励


class GamePublic(BaseModel):
    id: int
    title: str
    description: str | None = None
    game_url: str
    thumbnail_url: str | None = None
    points_reward: int
    created_at: datetime


class GamePlayData(BaseModel):
    game: GamePublic
    first_play: bool
    points_awarded: int
    balance: int


class MerchCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    image_urls: list[str] = Field(default_factory=list, max_length=10)


class MerchPublic(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: Decimal
    stock: int
    image_urls: list[str]
    created_at: datetime


class MusicCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    provider: MusicProvider
    source_url: str = Field(min_length=1, max_length=1024)


class MusicPublic(BaseModel):
    id: int
    owner_id: int
    title: str
    provider: MusicProvider
    source_url: str
    embed_html: str
    created_at: datetime


# ============================================================
# 订阅
# ============================================================


class SubscriptionStatusData(BaseModel):
    status: SubscriptionStatus
    active: bool
    expires_at: datetime | None = None


class CheckoutData(BaseModel):
    url: str


class PaymentWebhookEvent(BaseModel):
    """
    支付服务回调事件

    type 取值：subscription.activated / subscription.renewed /
    subscription.cancelled / subscription.expired
    """
    id: str = Field(min_length=1, max_length=64)
    type: str = Field(min_length=1, max_length=64)
    user_id: int
    customer_id: str | None = None
    current_period_end_ms: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)


# ============================================================
# AI 助手
# ============================================================


class AskRequest(BaseModel):
    question: str = Field(min_length=1, max_length=4000)


class AskData(BaseModel):
    answer: str


# ============================================================
# 管理后台
# ============================================================


class AdminOverviewData(BaseModel):
    users: int
    active_subscriptions: int
    homework_posts: int
    chat_messages: int
    games: int
    merch_items: int


class RoleGrantRequest(BaseModel):
    user_id: int
    role: UserRole


class PointsGrantRequest(BaseModel):
    user_id: int
    amount: int = Field(gt=0, le=100000)
    reason: str | None = Field(default=None, max_length=64)


class ConfigData(BaseModel):
    chat: dict[str, Any] = {}
    points_rules: dict[str, Any] = {}
    subscription: dict[str, Any] = {}
    music_providers: list[str] = []
