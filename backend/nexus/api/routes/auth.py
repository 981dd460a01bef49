"""
认证路由模块

- POST /auth/signup: 注册
- POST /auth/login: 用户名 + 密码登录
- GET /auth/session: 当前会话（未登录时 authenticated=false，不报错）
"""
from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter

from nexus import crud
from nexus.api.deps import OptionalSession, SessionDep
from nexus.api.errors import AppError
from nexus.api.schemas import (
    ApiEnvelope,
    AuthLoginData,
    LoginRequest,
    SessionData,
    SignupRequest,
    UserProfile,
)
from nexus.core import security
from nexus.core.config import settings
from nexus.enums import UserRole
from nexus.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


def build_profile(session, user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        music_service=user.music_service,
        subscription_status=user.subscription_status,
        subscription_expires_at=user.subscription_expires_at,
        points_balance=crud.get_balance(session=session, user_id=user.id),
    )


def _login_data(session, user: User) -> AuthLoginData:
    access_token_expires = timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    is_admin = crud.has_role(session=session, user_id=user.id, role=UserRole.admin)
    token = security.create_access_token(
        user.id,
        expires_delta=access_token_expires,
        role_hint=UserRole.admin.value if is_admin else UserRole.user.value,
    )
    return AuthLoginData(
        access_token=token,
        expires_in=int(access_token_expires.total_seconds()),
        user=build_profile(session, user),
    )


@router.post("/signup", response_model=ApiEnvelope)
def signup(session: SessionDep, body: SignupRequest) -> ApiEnvelope:
    """
    注册并直接登录

    请求路径: POST /api/v1/auth/signup
    """
    user = crud.create_user(
        session=session,
        username=body.username,
        password=body.password,
        display_name=body.display_name.strip(),
    )
    return ApiEnvelope(data=_login_data(session, user))


@router.post("/login", response_model=ApiEnvelope)
def login(session: SessionDep, body: LoginRequest) -> ApiEnvelope:
    """
    用户登录

    令牌中的 role 声明只供前端决定是否显示管理入口。

    请求路径: POST /api/v1/auth/login
    """
    user = crud.authenticate(session=session, username=body.username, password=body.password)
    if not user:
        raise AppError(code=401002, message="Incorrect username or password", status_code=401)
    return ApiEnvelope(data=_login_data(session, user))


@router.get("/session", response_model=ApiEnvelope)
def read_session(session: SessionDep, ctx: OptionalSession) -> ApiEnvelope:
    if ctx is None:
        return ApiEnvelope(data=SessionData(authenticated=False))
    return ApiEnvelope(
        data=SessionData(
            authenticated=True,
            user=build_profile(session, ctx.user),
            role=ctx.role,
            subscription_active=ctx.subscription_active,
        )
    )
