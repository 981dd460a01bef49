"""
会话与身份校验

current_session 从访问令牌解析出当前会话：用户、角色、订阅是否有效。
任何解析错误（令牌无效、数据库异常、用户不存在）都按未登录处理。

令牌里的 role 只是界面提示，这里的角色从 user_roles 表读取；
管理员操作在使用时还会再查一次（见 nexus.api.deps.get_admin_user）。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

import jwt
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from nexus import crud
from nexus.api.schemas import TokenPayload
from nexus.core import security
from nexus.enums import SubscriptionStatus, UserRole
from nexus.models import User, as_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    user: User
    role: UserRole
    subscription_active: bool


def is_subscription_active(
    status: SubscriptionStatus | str, expires_at: datetime | None, *, now: datetime | None = None
) -> bool:
    """
    订阅是否有效

    - active：没有到期时间，或到期时间在未来
    - cancelled：到期时间在未来（已付费周期内仍可使用）
    - 其他状态一律无效
    """
    now = now or utc_now()
    expires = as_utc(expires_at)
    status = SubscriptionStatus(status)
    if status == SubscriptionStatus.active:
        return expires is None or expires > now
    if status == SubscriptionStatus.cancelled:
        return expires is not None and expires > now
    return False


def current_session(*, session: Session, token: str | None) -> SessionContext | None:
    if not token:
        return None
    try:
        payload = TokenPayload(**security.decode_access_token(token))
        if not payload.sub:
            return None
        user = session.get(User, int(payload.sub))
        if not user:
            return None
        is_admin = crud.has_role(session=session, user_id=user.id, role=UserRole.admin)
    except (jwt.InvalidTokenError, PydanticValidationError, ValueError):
        return None
    except SQLAlchemyError:
        logger.exception("Failed to resolve session")
        session.rollback()
        return None

    return SessionContext(
        user=user,
        role=UserRole.admin if is_admin else UserRole.user,
        subscription_active=is_subscription_active(
            user.subscription_status, user.subscription_expires_at
        ),
    )
