"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中。

会话相关依赖按权限从低到高：
- OptionalSession: 可能为空的会话（不强制登录）
- CurrentSession / CurrentUser: 必须登录，否则 AuthRequired（跳转 /auth）
- SubscribedUser: 还必须有有效订阅，否则 SubscriptionRequired（跳转 /subscription）
- AdminUser: 还必须是管理员。角色在这里重新从 user_roles 表读取，
  不信任令牌里的 role 声明，否则 PermissionDenied（跳转 /）
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from nexus import crud
from nexus.api.errors import AuthRequired, PermissionDenied, SubscriptionRequired
from nexus.core.db import engine
from nexus.enums import UserRole
from nexus.models import User
from nexus.services.session_gate import SessionContext, current_session

# 缺少 Authorization 头时不直接报 403，由下面的依赖统一返回 AuthRequired
reusable_oauth2 = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials | None, Depends(reusable_oauth2)]


def get_optional_session(session: SessionDep, token: TokenDep) -> SessionContext | None:
    return current_session(session=session, token=token.credentials if token else None)


OptionalSession = Annotated[SessionContext | None, Depends(get_optional_session)]


def get_current_session(ctx: OptionalSession) -> SessionContext:
    if ctx is None:
        raise AuthRequired()
    return ctx


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]


def get_current_user(ctx: CurrentSession) -> User:
    return ctx.user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_subscribed_user(ctx: CurrentSession) -> User:
    if not ctx.subscription_active:
        raise SubscriptionRequired()
    return ctx.user


SubscribedUser = Annotated[User, Depends(get_subscribed_user)]


def get_admin_user(session: SessionDep, ctx: CurrentSession) -> User:
    """管理员操作入口：每次都回查 user_roles 表"""
    if not crud.has_role(session=session, user_id=ctx.user.id, role=UserRole.admin):
        raise PermissionDenied()
    return ctx.user


AdminUser = Annotated[User, Depends(get_admin_user)]
