"""作业帖子 CRUD 操作"""
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from nexus.api.errors import NotFound, ValidationError
from nexus.models import HomeworkLike, HomeworkPost, HomeworkReply

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 10000
MAX_REPLY_LENGTH = 2000


def get_post(*, session: Session, post_id: int) -> HomeworkPost:
    post = session.get(HomeworkPost, post_id)
    if not post:
        raise NotFound("Post not found", code=404101)
    return post


def list_posts(
    *, session: Session, offset: int, limit: int, author_id: int | None = None
) -> tuple[list[HomeworkPost], int]:
    count_stmt = select(func.count()).select_from(HomeworkPost)
    stmt = select(HomeworkPost)
    if author_id is not None:
        count_stmt = count_stmt.where(HomeworkPost.author_id == author_id)
        stmt = stmt.where(HomeworkPost.author_id == author_id)
    count = session.exec(count_stmt).one()
    rows = session.exec(
        stmt.order_by(col(HomeworkPost.created_at).desc(), col(HomeworkPost.id).desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return list(rows), count


def create_post(
    *,
    session: Session,
    author_id: int,
    title: str,
    description: str,
    points_required: int,
    image_url: str | None = None,
) -> HomeworkPost:
    title = title.strip()
    description = description.strip()
    if not title or len(title) > MAX_TITLE_LENGTH:
        raise ValidationError("Title must be 1-200 characters", code=400401, field="title")
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "Description must be 1-10000 characters", code=400402, field="description"
        )
    if points_required < 0:
        raise ValidationError(
            "Points required cannot be negative", code=400403, field="points_required"
        )

    post = HomeworkPost(
        author_id=author_id,
        title=title,
        description=description,
        image_url=image_url,
        points_required=points_required,
    )
    session.add(post)
    session.commit()
    session.refresh(post)
    return post


def delete_post(*, session: Session, post: HomeworkPost) -> None:
    session.delete(post)
    session.commit()


def like_post(*, session: Session, user_id: int, post_id: int) -> tuple[int, bool]:
    """
    点赞，每个用户对每个帖子只计一次

    Returns:
        (当前点赞数, 本次是否新增)
    """
    session.add(HomeworkLike(user_id=user_id, post_id=post_id))
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        likes = session.exec(select(HomeworkPost.likes).where(HomeworkPost.id == post_id)).one()
        return likes, False

    table = HomeworkPost.__table__
    session.connection().execute(
        update(table).where(table.c.id == post_id).values(likes=table.c.likes + 1)
    )
    session.commit()
    likes = session.exec(select(HomeworkPost.likes).where(HomeworkPost.id == post_id)).one()
    return likes, True


def list_replies(*, session: Session, post_id: int) -> list[HomeworkReply]:
    stmt = (
        select(HomeworkReply)
        .where(HomeworkReply.post_id == post_id)
        .order_by(col(HomeworkReply.created_at), col(HomeworkReply.id))
    )
    return list(session.exec(stmt).all())


def create_reply(*, session: Session, post_id: int, author_id: int, content: str) -> HomeworkReply:
    text = content.strip()
    if not text or len(text) > MAX_REPLY_LENGTH:
        raise ValidationError("Reply must be 1-2000 characters", code=400404, field="content")
    reply = HomeworkReply(post_id=post_id, author_id=author_id, content=text)
    session.add(reply)
    session.commit()
    session.refresh(reply)
    return reply
