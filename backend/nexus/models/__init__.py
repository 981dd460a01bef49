"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- user.py: 用户与角色授权
- points.py: 积分账户与流水
- homework.py: 作业帖子、回复、点赞、解锁记录
- chat.py: 聊天消息
- catalog.py: 游戏、周边商品、音乐嵌入
- subscription.py: 订阅与支付回调事件
"""
from sqlmodel import SQLModel

from .base import as_utc, utc_now
from .catalog import Game, GamePlay, MerchItem, MusicEmbed
from .chat import ChatMessage
from .homework import HomeworkLike, HomeworkPost, HomeworkReply, UnlockRecord
from .points import PointTransaction, UserPoints
from .subscription import PaymentEvent, Subscription
from .user import User, UserRoleGrant

__all__ = [
    "SQLModel",
    "utc_now",
    "as_utc",
    "User",
    "UserRoleGrant",
    "UserPoints",
    "PointTransaction",
    "HomeworkPost",
    "HomeworkReply",
    "HomeworkLike",
    "UnlockRecord",
    "ChatMessage",
    "Game",
    "GamePlay",
    "MerchItem",
    "MusicEmbed",
    "Subscription",
    "PaymentEvent",
]
