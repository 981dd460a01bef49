"""
积分账本

所有余额变动都是一条带条件的相对更新：

    UPDATE user_points
       SET balance = balance + :delta
     WHERE user_id = :uid AND balance + :delta >= 0

不先读余额再写回，所以两个并发的加分请求不会互相覆盖；
扣分时余额不足会让 WHERE 条件不成立，影响行数为 0，余额保持不变。
流水记录与余额更新在同一个事务中写入。
"""
import logging

from sqlalchemy import update
from sqlmodel import Session, col, func, select

from nexus.api.errors import InsufficientBalance, ValidationError
from nexus.enums import PointTransactionType
from nexus.models import PointTransaction, User, UserPoints, utc_now

logger = logging.getLogger(__name__)


def get_user_points(*, session: Session, user_id: int) -> UserPoints:
    """获取用户积分账户，不存在则创建"""
    points = session.exec(select(UserPoints).where(UserPoints.user_id == user_id)).first()
    if not points:
        points = UserPoints(user_id=user_id, balance=0)
        session.add(points)
        session.commit()
        session.refresh(points)
    return points


def get_balance(*, session: Session, user_id: int) -> int:
    """直接读取余额列，不经过 ORM 身份映射，保证拿到数据库里的最新值"""
    balance = session.exec(
        select(UserPoints.balance).where(UserPoints.user_id == user_id)
    ).first()
    return balance or 0


def _ensure_account(*, session: Session, user_id: int) -> None:
    exists = session.exec(select(UserPoints.id).where(UserPoints.user_id == user_id)).first()
    if exists is None:
        session.add(UserPoints(user_id=user_id, balance=0))
        session.flush()


def _apply_delta(
    *,
    session: Session,
    user_id: int,
    delta: int,
    tx_type: PointTransactionType,
    reason: str | None,
    reference_id: int | None,
    commit: bool,
) -> int:
    table = UserPoints.__table__
    stmt = (
        update(table)
        .where(table.c.user_id == user_id)
        .where(table.c.balance + delta >= 0)
        .values(balance=table.c.balance + delta, updated_at=utc_now())
    )
    result = session.connection().execute(stmt)
    if result.rowcount != 1:
        balance = get_balance(session=session, user_id=user_id)
        if commit:
            session.rollback()
        raise InsufficientBalance(balance=balance, required=-delta)

    balance_after = get_balance(session=session, user_id=user_id)
    session.add(
        PointTransaction(
            user_id=user_id,
            type=tx_type,
            amount=delta,
            balance_after=balance_after,
            reason=reason,
            reference_id=reference_id,
        )
    )
    if commit:
        session.commit()
    else:
        session.flush()
    return balance_after


def credit_points(
    *,
    session: Session,
    user_id: int,
    amount: int,
    tx_type: PointTransactionType = PointTransactionType.earn,
    reason: str | None = None,
    reference_id: int | None = None,
    commit: bool = True,
) -> int:
    """
    增加积分

    Args:
        amount: 增加的积分，必须大于 0
        tx_type: earn（活动奖励）或 grant（管理员发放）
        commit: 为 False 时只 flush，由调用方在自己的事务里提交

    Returns:
        变动后的余额
    """
    if amount <= 0:
        raise ValidationError("Amount must be positive", code=400201, field="amount")
    _ensure_account(session=session, user_id=user_id)
    balance = _apply_delta(
        session=session,
        user_id=user_id,
        delta=amount,
        tx_type=tx_type,
        reason=reason,
        reference_id=reference_id,
        commit=commit,
    )
    logger.info("Credited %s points to user %s (%s), balance=%s", amount, user_id, reason, balance)
    return balance


def debit_points(
    *,
    session: Session,
    user_id: int,
    amount: int,
    reason: str | None = None,
    reference_id: int | None = None,
    commit: bool = True,
) -> int:
    """
    扣除积分

    余额不足时抛出 InsufficientBalance，余额保持不变。
    commit=True 时会回滚当前事务；commit=False 时由调用方负责回滚。

    Returns:
        变动后的余额
    """
    if amount <= 0:
        raise ValidationError("Amount must be positive", code=400201, field="amount")
    balance = _apply_delta(
        session=session,
        user_id=user_id,
        delta=-amount,
        tx_type=PointTransactionType.spend,
        reason=reason,
        reference_id=reference_id,
        commit=commit,
    )
    logger.info("Debited %s points from user %s (%s), balance=%s", amount, user_id, reason, balance)
    return balance


def list_transactions(
    *, session: Session, user_id: int, offset: int, limit: int
) -> tuple[list[PointTransaction], int]:
    count = session.exec(
        select(func.count())
        .select_from(PointTransaction)
        .where(PointTransaction.user_id == user_id)
    ).one()
    rows = session.exec(
        select(PointTransaction)
        .where(PointTransaction.user_id == user_id)
        .order_by(col(PointTransaction.created_at).desc(), col(PointTransaction.id).desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return list(rows), count


def leaderboard(*, session: Session, limit: int = 10) -> list[tuple[int, str, int]]:
    """
    积分排行榜

    按累计获得的积分（所有正向流水之和）排序，消费不会让排名下降。

    Returns:
        [(user_id, display_name, total_earned), ...]
    """
    total = func.sum(PointTransaction.amount).label("total_earned")
    stmt = (
        select(User.id, User.display_name, total)
        .join(PointTransaction, PointTransaction.user_id == User.id)
        .where(PointTransaction.amount > 0)
        .group_by(User.id, User.display_name)
        .order_by(total.desc(), User.id)
        .limit(limit)
    )
    return [(row[0], row[1], int(row[2])) for row in session.exec(stmt).all()]
