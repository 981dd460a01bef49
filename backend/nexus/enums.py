"""
枚举类型定义模块

定义应用中使用的所有枚举类型。
所有枚举都继承自 str 和 Enum，这样既可以直接写入字符串列，又具有枚举的特性。
"""
from enum import Enum


class UserRole(str, Enum):
    """
    用户角色枚举

    角色保存在 user_roles 表中，是权限判断的唯一可信来源：
    - user: 普通学生
    - admin: 管理员（可管理游戏、商品、发放积分）
    """
    user = "user"
    admin = "admin"


class SubscriptionStatus(str, Enum):
    """
    订阅状态枚举

    - active: 激活中
    - inactive: 从未订阅
    - cancelled: 已取消（到期前仍可使用）
    - expired: 已过期
    """
    active = "active"
    inactive = "inactive"
    cancelled = "cancelled"
    expired = "expired"


class PointTransactionType(str, Enum):
    """
    积分交易类型枚举

    - earn: 通过活动获得（如首次玩某个游戏）
    - spend: 消费（解锁作业帖子）
    - grant: 管理员发放
    """
    earn = "earn"
    spend = "spend"
    grant = "grant"


class MusicProvider(str, Enum):
    """音乐嵌入的来源平台"""
    spotify = "spotify"
    soundcloud = "soundcloud"
    apple_music = "apple_music"
    custom_iframe = "custom_iframe"


class ChatFeedState(str, Enum):
    """
    聊天连接状态

    Disconnected -> Subscribing -> Live -> Disconnected
    """
    disconnected = "disconnected"
    subscribing = "subscribing"
    live = "live"
