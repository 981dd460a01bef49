"""
用户路由模块

- 获取用户资料（包含积分余额）
- 更新用户资料（展示名、头像、偏好的音乐平台）
"""
from __future__ import annotations

from fastapi import APIRouter

from nexus.api.deps import CurrentUser, SessionDep
from nexus.api.routes.auth import build_profile
from nexus.api.schemas import ApiEnvelope, UserProfileUpdateRequest
from nexus.models import utc_now

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=ApiEnvelope)
def profile(session: SessionDep, current_user: CurrentUser) -> ApiEnvelope:
    return ApiEnvelope(data=build_profile(session, current_user))


@router.put("/profile", response_model=ApiEnvelope)
def update_profile(
    session: SessionDep, current_user: CurrentUser, body: UserProfileUpdateRequest
) -> ApiEnvelope:
    """
    更新用户资料

    只更新请求中提供的字段。

    请求路径: PUT /api/v1/user/profile
    """
    if body.display_name is not None:
        current_user.display_name = body.display_name.strip()
    if body.avatar_url is not None:
        current_user.avatar_url = body.avatar_url or None
    if body.music_service is not None:
        current_user.music_service = body.music_service
    current_user.updated_at = utc_now()
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return ApiEnvelope(data=build_profile(session, current_user))
