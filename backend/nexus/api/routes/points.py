"""
积分路由模块

- 查询积分余额
- 查询积分交易历史（分页）
- 积分排行榜
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from nexus import crud
from nexus.api.deps import CurrentUser, SessionDep, SubscribedUser
from nexus.api.schemas import (
    ApiEnvelope,
    LeaderboardEntry,
    PointsBalanceData,
    PointsTransactionsData,
    PointTransactionPublic,
)

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/balance", response_model=ApiEnvelope)
def balance(session: SessionDep, current_user: CurrentUser) -> ApiEnvelope:
    """
    获取积分余额

    请求路径: GET /api/v1/points/balance
    """
    return ApiEnvelope(
        data=PointsBalanceData(balance=crud.get_balance(session=session, user_id=current_user.id))
    )


@router.get("/transactions", response_model=ApiEnvelope)
def transactions(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    """
    获取积分交易历史（分页）

    按时间倒序排列。

    请求路径: GET /api/v1/points/transactions?page=1&page_size=20
    """
    rows, count = crud.list_transactions(
        session=session,
        user_id=current_user.id,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    data = [
        PointTransactionPublic(
            id=row.id,
            type=row.type,
            amount=row.amount,
            balance_after=row.balance_after,
            reason=row.reason,
            reference_id=row.reference_id,
            created_at=row.created_at,
        )
        for row in rows
    ]
    return ApiEnvelope(data=PointsTransactionsData(data=data, count=count))


@router.get("/leaderboard", response_model=ApiEnvelope)
def leaderboard(
    session: SessionDep,
    _: SubscribedUser,
    limit: int = Query(default=10, ge=1, le=50),
) -> ApiEnvelope:
    rows = crud.leaderboard(session=session, limit=limit)
    return ApiEnvelope(
        data=[
            LeaderboardEntry(rank=i, user_id=user_id, display_name=name, total_earned=total)
            for i, (user_id, name, total) in enumerate(rows, start=1)
        ]
    )
