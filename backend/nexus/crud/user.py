"""用户与角色 CRUD 操作"""
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from nexus.api.errors import NotFound, ValidationError
from nexus.core.security import get_password_hash, verify_password
from nexus.enums import SubscriptionStatus, UserRole
from nexus.models import User, UserPoints, UserRoleGrant, utc_now


def get_by_username(*, session: Session, username: str) -> User | None:
    """根据用户名查询用户"""
    statement = select(User).where(User.username == username)
    return session.exec(statement).first()


def create(*, session: Session, username: str, password: str, display_name: str) -> User:
    """创建新用户，同时初始化积分账户并授予 user 角色"""
    user = User(
        username=username,
        password_hash=get_password_hash(password),
        display_name=display_name,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ValidationError("Username already taken", code=400101, field="username")
    session.add(UserPoints(user_id=user.id, balance=0))
    session.add(UserRoleGrant(user_id=user.id, role=UserRole.user))
    session.commit()
    session.refresh(user)
    return user


def authenticate(*, session: Session, username: str, password: str) -> User | None:
    user = get_by_username(session=session, username=username)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def has_role(*, session: Session, user_id: int, role: UserRole) -> bool:
    """从 user_roles 表查询角色，每次调用都访问数据库"""
    statement = select(UserRoleGrant.id).where(
        UserRoleGrant.user_id == user_id, UserRoleGrant.role == role
    )
    return session.exec(statement).first() is not None


def list_roles(*, session: Session, user_id: int) -> list[UserRole]:
    rows = session.exec(select(UserRoleGrant.role).where(UserRoleGrant.user_id == user_id)).all()
    return [UserRole(r) for r in rows]


def grant_role(*, session: Session, user_id: int, role: UserRole) -> None:
    """授予角色，已存在时不做任何事"""
    if has_role(session=session, user_id=user_id, role=role):
        return
    session.add(UserRoleGrant(user_id=user_id, role=role))
    try:
        session.commit()
    except IntegrityError:
        # granted concurrently
        session.rollback()


def revoke_role(*, session: Session, user_id: int, role: UserRole) -> bool:
    grant = session.exec(
        select(UserRoleGrant).where(UserRoleGrant.user_id == user_id, UserRoleGrant.role == role)
    ).first()
    if not grant:
        return False
    session.delete(grant)
    session.commit()
    return True


def update_subscription(
    *,
    session: Session,
    user_id: int,
    status: SubscriptionStatus,
    expires_at: datetime | None,
    commit: bool = True,
) -> User:
    """更新用户表上的订阅状态"""
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found", code=404001)
    user.subscription_status = status
    user.subscription_expires_at = expires_at
    user.updated_at = utc_now()
    session.add(user)
    if commit:
        session.commit()
        session.refresh(user)
    return user
