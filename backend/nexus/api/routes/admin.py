"""
管理后台路由模块

所有接口都依赖 AdminUser：每次请求都回查 user_roles 表，
令牌里的 role 声明即使是 admin 也不作数。
"""
from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlmodel import col, func, or_, select

from nexus import crud
from nexus.api.deps import AdminUser, SessionDep
from nexus.api.errors import NotFound
from nexus.api.schemas import (
    AdminOverviewData,
    ApiEnvelope,
    PointsBalanceData,
    PointsGrantRequest,
    RoleGrantRequest,
)
from nexus.enums import PointTransactionType, SubscriptionStatus
from nexus.models import ChatMessage, Game, HomeworkPost, MerchItem, User, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _count(session, model) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


@router.get("/overview", response_model=ApiEnvelope)
def overview(session: SessionDep, _: AdminUser) -> ApiEnvelope:
    """
    管理后台首页统计

    请求路径: GET /api/v1/admin/overview
    """
    now = utc_now()
    active = session.exec(
        select(func.count())
        .select_from(User)
        .where(
            or_(
                (col(User.subscription_status) == SubscriptionStatus.active.value)
                & (
                    col(User.subscription_expires_at).is_(None)
                    | (col(User.subscription_expires_at) > now)
                ),
                (col(User.subscription_status) == SubscriptionStatus.cancelled.value)
                & (col(User.subscription_expires_at) > now),
            )
        )
    ).one()
    return ApiEnvelope(
        data=AdminOverviewData(
            users=_count(session, User),
            active_subscriptions=active,
            homework_posts=_count(session, HomeworkPost),
            chat_messages=_count(session, ChatMessage),
            games=_count(session, Game),
            merch_items=_count(session, MerchItem),
        )
    )


@router.post("/roles", response_model=ApiEnvelope)
def grant_role(session: SessionDep, admin: AdminUser, body: RoleGrantRequest) -> ApiEnvelope:
    if not session.get(User, body.user_id):
        raise NotFound("User not found", code=404001)
    crud.grant_role(session=session, user_id=body.user_id, role=body.role)
    logger.info("Admin %s granted %s to user %s", admin.id, body.role.value, body.user_id)
    return ApiEnvelope(data=crud.list_roles(session=session, user_id=body.user_id))


@router.delete("/roles", response_model=ApiEnvelope)
def revoke_role(session: SessionDep, admin: AdminUser, body: RoleGrantRequest) -> ApiEnvelope:
    crud.revoke_role(session=session, user_id=body.user_id, role=body.role)
    logger.info("Admin %s revoked %s from user %s", admin.id, body.role.value, body.user_id)
    return ApiEnvelope(data=crud.list_roles(session=session, user_id=body.user_id))


@router.post("/points/grant", response_model=ApiEnvelope)
def grant_points(session: SessionDep, admin: AdminUser, body: PointsGrantRequest) -> ApiEnvelope:
    """
    给用户发放积分

    请求路径: POST /api/v1/admin/points/grant
    """
    if not session.get(User, body.user_id):
        raise NotFound("User not found", code=404001)
    balance = crud.credit_points(
        session=session,
        user_id=body.user_id,
        amount=body.amount,
        tx_type=PointTransactionType.grant,
        reason=body.reason or "admin_grant",
        reference_id=admin.id,
    )
    return ApiEnvelope(data=PointsBalanceData(balance=balance))
