"""
作业分享路由模块

- 帖子列表 / 详情：未解锁的付费帖子只返回标题和价格
- 发帖、删帖（作者或管理员）
- 花积分解锁帖子
- 点赞（每人每帖一次）
- 回复（仅可见的帖子）
"""
from __future__ import annotations

from fastapi import APIRouter, Query
from sqlmodel import Session, col, select

from nexus import crud
from nexus.api.deps import SessionDep, SubscribedUser
from nexus.api.errors import AppError, PermissionDenied
from nexus.api.schemas import (
    ApiEnvelope,
    HomeworkPostCreateRequest,
    HomeworkPostPublic,
    HomeworkPostsData,
    HomeworkReplyCreateRequest,
    HomeworkReplyPublic,
    LikeData,
    Message,
    UnlockData,
)
from nexus.crud import homework as homework_crud
from nexus.crud import unlocks
from nexus.enums import UserRole
from nexus.models import HomeworkPost, HomeworkReply, User

router = APIRouter(prefix="/homework", tags=["homework"])


def _author_names(session: Session, posts: list[HomeworkPost]) -> dict[int, str]:
    ids = {p.author_id for p in posts}
    if not ids:
        return {}
    rows = session.exec(select(User.id, User.display_name).where(col(User.id).in_(ids))).all()
    return {row[0]: row[1] for row in rows}


def _to_public(post: HomeworkPost, *, visible: bool, author_name: str | None) -> HomeworkPostPublic:
    return HomeworkPostPublic(
        id=post.id,
        author_id=post.author_id,
        author_name=author_name,
        title=post.title,
        description=post.description if visible else None,
        image_url=post.image_url if visible else None,
        points_required=post.points_required,
        likes=post.likes,
        locked=not visible,
        created_at=post.created_at,
    )


def _reply_public(reply: HomeworkReply) -> HomeworkReplyPublic:
    return HomeworkReplyPublic(
        id=reply.id,
        post_id=reply.post_id,
        author_id=reply.author_id,
        content=reply.content,
        created_at=reply.created_at,
    )


def _require_visible(session: Session, user: User, post: HomeworkPost) -> None:
    unlocked = unlocks.unlocked_post_ids(session=session, user_id=user.id, post_ids=[post.id])
    if not unlocks.is_visible(user_id=user.id, post=post, unlocked_ids=unlocked):
        raise AppError(code=403101, message="Unlock this post to view its content", status_code=403)


@router.get("/posts", response_model=ApiEnvelope)
def list_posts(
    session: SessionDep,
    current_user: SubscribedUser,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    mine: bool = Query(default=False),
) -> ApiEnvelope:
    """
    帖子列表（分页，按时间倒序）

    请求路径: GET /api/v1/homework/posts?page=1&page_size=20
    """
    rows, count = homework_crud.list_posts(
        session=session,
        offset=(page - 1) * page_size,
        limit=page_size,
        author_id=current_user.id if mine else None,
    )
    unlocked = unlocks.unlocked_post_ids(
        session=session, user_id=current_user.id, post_ids=[p.id for p in rows]
    )
    names = _author_names(session, rows)
    data = [
        _to_public(
            p,
            visible=unlocks.is_visible(user_id=current_user.id, post=p, unlocked_ids=unlocked),
            author_name=names.get(p.author_id),
        )
        for p in rows
    ]
    return ApiEnvelope(data=HomeworkPostsData(data=data, count=count))


@router.post("/posts", response_model=ApiEnvelope)
def create_post(
    session: SessionDep, current_user: SubscribedUser, body: HomeworkPostCreateRequest
) -> ApiEnvelope:
    post = homework_crud.create_post(
        session=session,
        author_id=current_user.id,
        title=body.title,
        description=body.description,
        image_url=body.image_url,
        points_required=body.points_required,
    )
    return ApiEnvelope(data=_to_public(post, visible=True, author_name=current_user.display_name))


@router.get("/posts/unlocked", response_model=ApiEnvelope)
def unlocked_posts(session: SessionDep, current_user: SubscribedUser) -> ApiEnvelope:
    """当前用户已解锁的帖子 ID"""
    ids = unlocks.unlocked_post_ids(session=session, user_id=current_user.id)
    return ApiEnvelope(data=sorted(ids))


@router.get("/posts/{post_id}", response_model=ApiEnvelope)
def get_post(session: SessionDep, current_user: SubscribedUser, post_id: int) -> ApiEnvelope:
    post = homework_crud.get_post(session=session, post_id=post_id)
    unlocked = unlocks.unlocked_post_ids(session=session, user_id=current_user.id, post_ids=[post.id])
    visible = unlocks.is_visible(user_id=current_user.id, post=post, unlocked_ids=unlocked)
    names = _author_names(session, [post])
    return ApiEnvelope(data=_to_public(post, visible=visible, author_name=names.get(post.author_id)))


@router.delete("/posts/{post_id}", response_model=ApiEnvelope)
def delete_post(session: SessionDep, current_user: SubscribedUser, post_id: int) -> ApiEnvelope:
    """删除帖子：作者本人，或（回查角色后的）管理员"""
    post = homework_crud.get_post(session=session, post_id=post_id)
    if post.author_id != current_user.id and not crud.has_role(
        session=session, user_id=current_user.id, role=UserRole.admin
    ):
        raise PermissionDenied("Only the author can delete this post")
    homework_crud.delete_post(session=session, post=post)
    return ApiEnvelope(data=Message(message="Post deleted"))


@router.post("/posts/{post_id}/unlock", response_model=ApiEnvelope)
def unlock_post(session: SessionDep, current_user: SubscribedUser, post_id: int) -> ApiEnvelope:
    """
    花积分解锁帖子

    价格取自帖子本身。已解锁（或作者本人、免费帖子）时直接成功，charged 为 0。
    积分不足返回 402001，余额和解锁状态都不变。

    请求路径: POST /api/v1/homework/posts/{post_id}/unlock
    """
    post = homework_crud.get_post(session=session, post_id=post_id)
    result = unlocks.purchase(session=session, user_id=current_user.id, post=post)
    return ApiEnvelope(
        data=UnlockData(
            post_id=result.post_id,
            charged=result.charged,
            already_unlocked=result.already_unlocked,
            balance=result.balance,
        )
    )


@router.post("/posts/{post_id}/like", response_model=ApiEnvelope)
def like_post(session: SessionDep, current_user: SubscribedUser, post_id: int) -> ApiEnvelope:
    homework_crud.get_post(session=session, post_id=post_id)
    likes, liked = homework_crud.like_post(session=session, user_id=current_user.id, post_id=post_id)
    return ApiEnvelope(data=LikeData(post_id=post_id, likes=likes, liked=liked))


@router.get("/posts/{post_id}/replies", response_model=ApiEnvelope)
def list_replies(session: SessionDep, current_user: SubscribedUser, post_id: int) -> ApiEnvelope:
    post = homework_crud.get_post(session=session, post_id=post_id)
    _require_visible(session, current_user, post)
    replies = homework_crud.list_replies(session=session, post_id=post_id)
    return ApiEnvelope(data=[_reply_public(r) for r in replies])


@router.post("/posts/{post_id}/replies", response_model=ApiEnvelope)
def create_reply(
    session: SessionDep,
    current_user: SubscribedUser,
    post_id: int,
    body: HomeworkReplyCreateRequest,
) -> ApiEnvelope:
    post = homework_crud.get_post(session=session, post_id=post_id)
    _require_visible(session, current_user, post)
    reply = homework_crud.create_reply(
        session=session, post_id=post_id, author_id=current_user.id, content=body.content
    )
    return ApiEnvelope(data=_reply_public(reply))
