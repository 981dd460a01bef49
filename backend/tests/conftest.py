from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from nexus import crud
from nexus.api.deps import get_db
from nexus.core import security
from nexus.enums import PointTransactionType, SubscriptionStatus, UserRole
from nexus.main import app
from nexus.models import (
    ChatMessage,
    Game,
    GamePlay,
    HomeworkLike,
    HomeworkPost,
    HomeworkReply,
    MerchItem,
    MusicEmbed,
    PaymentEvent,
    PointTransaction,
    Subscription,
    UnlockRecord,
    User,
    UserPoints,
    UserRoleGrant,
)


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        # Clean tables after each test (children first).
        session.rollback()
        for model in (
            PaymentEvent,
            Subscription,
            MusicEmbed,
            MerchItem,
            GamePlay,
            Game,
            ChatMessage,
            UnlockRecord,
            HomeworkLike,
            HomeworkReply,
            HomeworkPost,
            PointTransaction,
            UserPoints,
            UserRoleGrant,
            User,
        ):
            session.exec(delete(model))
        session.commit()


@pytest.fixture(scope="function")
def client(engine) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user_id: int, *, role_hint: str | None = None) -> dict[str, str]:
    token = security.create_access_token(user_id, expires_delta=timedelta(hours=1), role_hint=role_hint)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db) -> Callable[..., tuple[User, dict[str, str]]]:
    """
    创建测试用户，返回 (user, headers)

    默认已订阅、不是管理员、余额为 0。
    """
    counter = {"n": 0}

    def _make(
        username: str | None = None,
        *,
        subscribed: bool = True,
        admin: bool = False,
        balance: int = 0,
    ) -> tuple[User, dict[str, str]]:
        counter["n"] += 1
        user = crud.create_user(
            session=db,
            username=username or f"student{counter['n']}",
            password="password123",
            display_name=f"Student {counter['n']}",
        )
        if subscribed:
            user = crud.update_subscription(
                session=db, user_id=user.id, status=SubscriptionStatus.active, expires_at=None
            )
        if admin:
            crud.grant_role(session=db, user_id=user.id, role=UserRole.admin)
        if balance:
            crud.credit_points(
                session=db,
                user_id=user.id,
                amount=balance,
                tx_type=PointTransactionType.grant,
                reason="test_seed",
            )
        return user, auth_headers(user.id)

    return _make
