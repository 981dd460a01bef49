"""
音乐嵌入路由模块

返回的 embed_html 由服务端按平台模板生成，前端直接渲染即可。
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from nexus import crud
from nexus.api.deps import CurrentUser, SessionDep, SubscribedUser
from nexus.api.errors import PermissionDenied
from nexus.api.schemas import ApiEnvelope, Message, MusicCreateRequest, MusicPublic
from nexus.crud import catalog
from nexus.enums import UserRole
from nexus.models import MusicEmbed
from nexus.services.embeds import render_embed

router = APIRouter(prefix="/music", tags=["music"])


def _music_public(embed: MusicEmbed) -> MusicPublic:
    return MusicPublic(
        id=embed.id,
        owner_id=embed.owner_id,
        title=embed.title,
        provider=embed.provider,
        source_url=embed.source_url,
        embed_html=render_embed(embed.provider, embed.source_url, title=embed.title).to_html(),
        created_at=embed.created_at,
    )


@router.get("", response_model=ApiEnvelope)
def list_music(
    session: SessionDep, current_user: SubscribedUser, mine: bool = Query(default=False)
) -> ApiEnvelope:
    rows = catalog.list_music(session=session, owner_id=current_user.id if mine else None)
    return ApiEnvelope(data=[_music_public(e) for e in rows])


@router.post("", response_model=ApiEnvelope)
def create_music(
    session: SessionDep, current_user: SubscribedUser, body: MusicCreateRequest
) -> ApiEnvelope:
    """
    添加音乐

    链接必须是 https，且域名属于所选平台。

    请求路径: POST /api/v1/music
    """
    embed = catalog.create_music(
        session=session,
        owner_id=current_user.id,
        title=body.title,
        provider=body.provider,
        source_url=body.source_url,
    )
    return ApiEnvelope(data=_music_public(embed))


@router.delete("/{embed_id}", response_model=ApiEnvelope)
def delete_music(session: SessionDep, current_user: CurrentUser, embed_id: int) -> ApiEnvelope:
    embed = catalog.get_music(session=session, embed_id=embed_id)
    if embed.owner_id != current_user.id and not crud.has_role(
        session=session, user_id=current_user.id, role=UserRole.admin
    ):
        raise PermissionDenied("Only the owner can delete this embed")
    catalog.delete_music(session=session, embed=embed)
    return ApiEnvelope(data=Message(message="Music deleted"))
