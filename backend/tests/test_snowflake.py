from __future__ import annotations

from datetime import datetime, timedelta, timezone

from nexus import crud
from nexus.core.config import settings
from nexus.core.db import init_db
from nexus.core.snowflake import Snowflake, id_created_at
from nexus.enums import UserRole


def test_ids_are_unique_and_increasing():
    gen = Snowflake(node_id=3)
    ids = [gen.next_id() for _ in range(5000)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_id_encodes_creation_time():
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    created = id_created_at(Snowflake(node_id=1).next_id())
    assert before <= created <= datetime.now(timezone.utc) + timedelta(seconds=1)


def test_init_db_seeds_admin_once(db, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_USERNAME", "principal")
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "password123")

    init_db(db)
    init_db(db)

    admin = crud.get_user_by_username(session=db, username="principal")
    assert admin is not None
    assert set(crud.list_roles(session=db, user_id=admin.id)) == {UserRole.user, UserRole.admin}
