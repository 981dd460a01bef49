"""
订阅路由模块

- GET /subscription/status: 当前订阅状态
- POST /subscription/checkout: 创建结账会话，返回支付页面地址
- POST /subscription/webhook: 支付服务回调，按事件 ID 去重
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Header
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from nexus import crud
from nexus.api.deps import CurrentUser, SessionDep
from nexus.api.errors import AppError, NotFound
from nexus.api.schemas import (
    ApiEnvelope,
    CheckoutData,
    PaymentWebhookEvent,
    SubscriptionStatusData,
)
from nexus.core.config import settings
from nexus.enums import SubscriptionStatus
from nexus.integrations.payments import PaymentClient, verify_webhook_secret
from nexus.models import PaymentEvent, Subscription, User, utc_now
from nexus.services.session_gate import is_subscription_active

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["subscription"])

_EVENT_STATUS = {
    "subscription.activated": SubscriptionStatus.active,
    "subscription.renewed": SubscriptionStatus.active,
    "subscription.cancelled": SubscriptionStatus.cancelled,
    "subscription.expired": SubscriptionStatus.expired,
}


@router.get("/status", response_model=ApiEnvelope)
def status(current_user: CurrentUser) -> ApiEnvelope:
    return ApiEnvelope(
        data=SubscriptionStatusData(
            status=current_user.subscription_status,
            active=is_subscription_active(
                current_user.subscription_status, current_user.subscription_expires_at
            ),
            expires_at=current_user.subscription_expires_at,
        )
    )


@router.post("/checkout", response_model=ApiEnvelope)
def checkout(current_user: CurrentUser) -> ApiEnvelope:
    """
    创建结账会话

    前端在新窗口打开返回的 url；订阅状态由支付服务回调更新。

    请求路径: POST /api/v1/subscription/checkout
    """
    result = PaymentClient().create_checkout_session(
        user_id=current_user.id, username=current_user.username
    )
    logger.info("Created checkout session %s for user %s", result.session_id, current_user.id)
    return ApiEnvelope(data=CheckoutData(url=result.url))


def _parse_ms(ms: Any) -> datetime | None:
    if ms is None:
        return None
    try:
        ms_int = int(ms)
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(ms_int / 1000, tz=timezone.utc)


@router.post("/webhook", response_model=ApiEnvelope)
def webhook(
    session: SessionDep,
    event: PaymentWebhookEvent,
    authorization: str | None = Header(default=None),
) -> ApiEnvelope:
    """
    支付服务回调

    支付服务重试时会使用相同的事件 ID，重复事件直接返回 duplicate。

    请求路径: POST /api/v1/subscription/webhook
    """
    if not verify_webhook_secret(authorization):
        raise AppError(code=401101, message="Unauthorized", status_code=401)

    try:
        session.add(
            PaymentEvent(event_id=event.id, event_type=event.type, payload=event.model_dump())
        )
        session.flush()
    except IntegrityError:
        session.rollback()
        return ApiEnvelope(data={"received": True, "duplicate": True})

    new_status = _EVENT_STATUS.get(event.type)
    if new_status is None:
        session.commit()
        logger.info("Ignoring payment event %s of type %s", event.id, event.type)
        return ApiEnvelope(data={"received": True, "ignored": True})

    user = session.get(User, event.user_id)
    if not user:
        session.rollback()
        raise NotFound("User not found", code=404001)

    period_end = _parse_ms(event.current_period_end_ms)
    sub = session.exec(select(Subscription).where(Subscription.user_id == user.id)).first()
    if not sub:
        sub = Subscription(
            user_id=user.id,
            price_id=settings.PAYMENT_PRICE_ID,
            status=new_status,
        )
    sub.status = new_status
    sub.provider_customer_id = event.customer_id or sub.provider_customer_id
    if period_end is not None:
        sub.current_period_end = period_end
    elif new_status == SubscriptionStatus.active:
        # 没带周期结束时间的激活事件视为不限期
        sub.current_period_end = None
    if new_status == SubscriptionStatus.cancelled:
        sub.cancelled_at = utc_now()
    sub.updated_at = utc_now()
    session.add(sub)

    crud.update_subscription(
        session=session,
        user_id=user.id,
        status=new_status,
        expires_at=sub.current_period_end,
        commit=False,
    )
    session.commit()
    logger.info("User %s subscription is now %s", event.user_id, new_status.value)
    return ApiEnvelope(data={"received": True})
