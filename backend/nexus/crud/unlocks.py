"""
帖子解锁

可见性规则：作者本人、免费帖子、或已有解锁记录，三者满足其一即可见。

购买流程在一个事务内完成：
1. 已可见则直接返回（不扣分）
2. 插入解锁记录，(user_id, post_id) 唯一约束拦住并发的重复购买
3. 按帖子上保存的价格扣分
4. 提交

任何一步失败整体回滚，不会出现扣了分却没有解锁记录的情况。
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from nexus.api.errors import AppError, PersistenceError
from nexus.crud.points import debit_points, get_balance
from nexus.models import HomeworkPost, UnlockRecord

logger = logging.getLogger(__name__)


@dataclass
class UnlockResult:
    post_id: int
    charged: int
    already_unlocked: bool
    balance: int


def has_unlock_record(*, session: Session, user_id: int, post_id: int) -> bool:
    stmt = select(UnlockRecord.id).where(
        UnlockRecord.user_id == user_id, UnlockRecord.post_id == post_id
    )
    return session.exec(stmt).first() is not None


def unlocked_post_ids(
    *, session: Session, user_id: int, post_ids: list[int] | None = None
) -> set[int]:
    """查询用户已解锁的帖子 ID，传入 post_ids 时只在这些帖子里查"""
    stmt = select(UnlockRecord.post_id).where(UnlockRecord.user_id == user_id)
    if post_ids is not None:
        if not post_ids:
            return set()
        stmt = stmt.where(col(UnlockRecord.post_id).in_(post_ids))
    return set(session.exec(stmt).all())


def is_visible(*, user_id: int, post: HomeworkPost, unlocked_ids: set[int]) -> bool:
    """作者本人、免费帖子、已解锁，满足其一即可见"""
    return post.author_id == user_id or post.points_required == 0 or post.id in unlocked_ids


def purchase(*, session: Session, user_id: int, post: HomeworkPost) -> UnlockResult:
    """
    花积分解锁帖子

    价格取自数据库中的帖子，不接受客户端传入的价格。
    重复购买视为成功，charged 为 0。

    Raises:
        InsufficientBalance: 余额不足，不写入任何数据
        PersistenceError: 数据库写入失败，事务已回滚
    """
    price = post.points_required
    post_id = post.id

    if post.author_id == user_id or price == 0 or has_unlock_record(
        session=session, user_id=user_id, post_id=post_id
    ):
        return UnlockResult(
            post_id=post_id,
            charged=0,
            already_unlocked=True,
            balance=get_balance(session=session, user_id=user_id),
        )

    try:
        session.add(UnlockRecord(user_id=user_id, post_id=post_id, points_spent=price))
        try:
            session.flush()
        except IntegrityError:
            # another request unlocked it first
            session.rollback()
            logger.info("Post %s already unlocked by user %s", post_id, user_id)
            return UnlockResult(
                post_id=post_id,
                charged=0,
                already_unlocked=True,
                balance=get_balance(session=session, user_id=user_id),
            )

        balance = debit_points(
            session=session,
            user_id=user_id,
            amount=price,
            reason="unlock_post",
            reference_id=post_id,
            commit=False,
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to unlock post %s for user %s", post_id, user_id)
        raise PersistenceError()

    logger.info("User %s unlocked post %s for %s points", user_id, post_id, price)
    return UnlockResult(post_id=post_id, charged=price, already_unlocked=False, balance=balance)
