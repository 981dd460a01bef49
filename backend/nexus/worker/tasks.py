"""
定时任务逻辑
"""

import logging
from datetime import datetime
from uuid import uuid4

from sqlalchemy import update
from sqlmodel import Session, col

from nexus.core.db import engine
from nexus.core.redis import acquire_lock, release_lock
from nexus.enums import SubscriptionStatus
from nexus.models import Subscription, User, utc_now

logger = logging.getLogger(__name__)

EXPIRE_LOCK_KEY = "subscription:expire:lock"
EXPIRE_LOCK_TTL_SECONDS = 60 * 10

_LAPSING = (SubscriptionStatus.active.value, SubscriptionStatus.cancelled.value)


def expire_lapsed_subscriptions(session: Session, *, now: datetime | None = None) -> int:
    """
    把已过期的订阅标记为 expired

    active / cancelled 且到期时间早于 now 的用户改为 expired，
    subscriptions 表同步更新。到期时间为空的订阅不处理。

    Returns:
        被标记为过期的用户数
    """
    now = now or utc_now()
    conn = session.connection()
    result = conn.execute(
        update(User)
        .where(col(User.subscription_status).in_(_LAPSING))
        .where(col(User.subscription_expires_at).is_not(None))
        .where(col(User.subscription_expires_at) < now)
        .values(subscription_status=SubscriptionStatus.expired.value, updated_at=now)
    )
    conn.execute(
        update(Subscription)
        .where(col(Subscription.status).in_(_LAPSING))
        .where(col(Subscription.current_period_end).is_not(None))
        .where(col(Subscription.current_period_end) < now)
        .values(status=SubscriptionStatus.expired.value, updated_at=now)
    )
    session.commit()
    return result.rowcount or 0


def expire_subscriptions() -> None:
    """
    每小时整点执行一次

    多个调度器实例同时运行时只有拿到锁的那个会执行。
    """
    lock_value = str(uuid4())
    if not acquire_lock(EXPIRE_LOCK_KEY, lock_value, expire_seconds=EXPIRE_LOCK_TTL_SECONDS):
        logger.info("Subscription expiry task already running, skip this run.")
        return

    try:
        with Session(engine) as session:
            expired = expire_lapsed_subscriptions(session)
        logger.info("Subscription expiry finished: expired=%d", expired)
    finally:
        release_lock(EXPIRE_LOCK_KEY, lock_value)
