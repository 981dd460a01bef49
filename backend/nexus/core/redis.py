"""
Redis 连接模块

Redis 在本项目中的用途：
- 聊天消息跨进程广播（CHAT_BROKER=redis 时的 pub/sub 通道）
- 定时任务的分布式锁（避免多个调度器实例重复执行）

同步客户端使用 @lru_cache 保证全局单例；异步客户端每个 WebSocket
订阅各自创建，关闭订阅时一并释放。
"""
from __future__ import annotations

from functools import lru_cache

import redis
from redis.asyncio import Redis as AsyncRedis

from nexus.core.config import settings


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    """获取同步 Redis 客户端（单例）"""
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
        decode_responses=True,
    )


def new_async_redis() -> AsyncRedis:
    """创建一个新的异步 Redis 客户端，调用方负责 aclose()"""
    return AsyncRedis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
        decode_responses=True,
    )


def acquire_lock(key: str, value: str, *, expire_seconds: int) -> bool:
    """SET NX EX 实现的简单分布式锁"""
    return bool(get_redis().set(key, value, nx=True, ex=expire_seconds))


_RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


def release_lock(key: str, value: str) -> bool:
    """只释放自己持有的锁"""
    return bool(get_redis().eval(_RELEASE_SCRIPT, 1, key, value))
