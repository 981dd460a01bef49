from __future__ import annotations

from sqlmodel import func, select

from nexus import crud
from nexus.crud import homework as homework_crud
from nexus.crud import unlocks
from nexus.models import PointTransaction, UnlockRecord


def _create_post(client, headers, *, price: int = 30) -> dict:
    r = client.post(
        "/api/v1/homework/posts",
        headers=headers,
        json={
            "title": "Algebra worksheet 4",
            "description": "Full worked answers for questions 1-10",
            "points_required": price,
        },
    )
    assert r.status_code == 200
    return r.json()["data"]


def _unlock_count(db, user_id: int, post_id: int) -> int:
    return db.exec(
        select(func.count())
        .select_from(UnlockRecord)
        .where(UnlockRecord.user_id == user_id, UnlockRecord.post_id == post_id)
    ).one()


def test_insufficient_balance_leaves_post_locked(client, db, make_user):
    _, author_headers = make_user()
    buyer, buyer_headers = make_user(balance=20)
    post = _create_post(client, author_headers, price=30)

    r = client.get(f"/api/v1/homework/posts/{post['id']}", headers=buyer_headers)
    data = r.json()["data"]
    assert data["locked"] is True
    assert data["description"] is None

    r = client.post(f"/api/v1/homework/posts/{post['id']}/unlock", headers=buyer_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == 402001
    assert body["data"] == {"balance": 20, "required": 30}

    assert crud.get_balance(session=db, user_id=buyer.id) == 20
    assert _unlock_count(db, buyer.id, post["id"]) == 0


def test_unlock_then_repeat_charges_once(client, db, make_user):
    _, author_headers = make_user()
    buyer, buyer_headers = make_user(balance=50)
    post = _create_post(client, author_headers, price=30)

    r = client.post(f"/api/v1/homework/posts/{post['id']}/unlock", headers=buyer_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["charged"] == 30
    assert data["already_unlocked"] is False
    assert data["balance"] == 20

    r = client.post(f"/api/v1/homework/posts/{post['id']}/unlock", headers=buyer_headers)
    data = r.json()["data"]
    assert data["charged"] == 0
    assert data["already_unlocked"] is True
    assert data["balance"] == 20

    assert _unlock_count(db, buyer.id, post["id"]) == 1
    spends = db.exec(
        select(func.count())
        .select_from(PointTransaction)
        .where(PointTransaction.user_id == buyer.id, PointTransaction.amount < 0)
    ).one()
    assert spends == 1

    r = client.get(f"/api/v1/homework/posts/{post['id']}", headers=buyer_headers)
    data = r.json()["data"]
    assert data["locked"] is False
    assert data["description"].startswith("Full worked answers")

    r = client.get("/api/v1/homework/posts/unlocked", headers=buyer_headers)
    assert r.json()["data"] == [post["id"]]


def test_author_and_free_posts_are_visible(client, make_user):
    _, author_headers = make_user()
    _, reader_headers = make_user()
    paid = _create_post(client, author_headers, price=30)
    free = _create_post(client, author_headers, price=0)

    r = client.get(f"/api/v1/homework/posts/{paid['id']}", headers=author_headers)
    assert r.json()["data"]["locked"] is False

    r = client.get("/api/v1/homework/posts", headers=reader_headers)
    posts = {p["id"]: p for p in r.json()["data"]["data"]}
    assert posts[paid["id"]]["locked"] is True
    assert posts[free["id"]]["locked"] is False

    r = client.post(f"/api/v1/homework/posts/{free['id']}/unlock", headers=reader_headers)
    assert r.json()["data"]["charged"] == 0


def test_concurrent_unlock_loses_insert_race(db, make_user, monkeypatch):
    author, _ = make_user()
    buyer, _ = make_user(balance=50)
    post = homework_crud.create_post(
        session=db,
        author_id=author.id,
        title="Essay outline",
        description="Thesis and three body paragraphs",
        points_required=30,
    )
    # the other request already inserted the record but this one did not see it
    db.add(UnlockRecord(user_id=buyer.id, post_id=post.id, points_spent=30))
    db.commit()
    monkeypatch.setattr(unlocks, "has_unlock_record", lambda **_: False)

    result = unlocks.purchase(session=db, user_id=buyer.id, post=post)

    assert result.already_unlocked is True
    assert result.charged == 0
    assert crud.get_balance(session=db, user_id=buyer.id) == 50
    assert _unlock_count(db, buyer.id, post.id) == 1


def test_replies_require_visibility(client, make_user):
    _, author_headers = make_user()
    _, reader_headers = make_user(balance=30)
    post = _create_post(client, author_headers, price=30)

    r = client.post(
        f"/api/v1/homework/posts/{post['id']}/replies",
        headers=reader_headers,
        json={"content": "Thanks!"},
    )
    assert r.status_code == 403
    assert r.json()["code"] == 403101

    client.post(f"/api/v1/homework/posts/{post['id']}/unlock", headers=reader_headers)
    r = client.post(
        f"/api/v1/homework/posts/{post['id']}/replies",
        headers=reader_headers,
        json={"content": "Thanks!"},
    )
    assert r.status_code == 200

    r = client.get(f"/api/v1/homework/posts/{post['id']}/replies", headers=author_headers)
    assert [reply["content"] for reply in r.json()["data"]] == ["Thanks!"]


def test_like_once_per_user(client, make_user):
    _, author_headers = make_user()
    _, reader_headers = make_user()
    post = _create_post(client, author_headers, price=0)

    r = client.post(f"/api/v1/homework/posts/{post['id']}/like", headers=reader_headers)
    assert r.json()["data"] == {"post_id": post["id"], "likes": 1, "liked": True}
    r = client.post(f"/api/v1/homework/posts/{post['id']}/like", headers=reader_headers)
    assert r.json()["data"] == {"post_id": post["id"], "likes": 1, "liked": False}


def test_only_author_or_admin_deletes(client, make_user):
    _, author_headers = make_user()
    _, other_headers = make_user()
    _, admin_headers = make_user(admin=True)
    post = _create_post(client, author_headers)

    r = client.delete(f"/api/v1/homework/posts/{post['id']}", headers=other_headers)
    assert r.status_code == 403

    r = client.delete(f"/api/v1/homework/posts/{post['id']}", headers=admin_headers)
    assert r.status_code == 200

    r = client.get(f"/api/v1/homework/posts/{post['id']}", headers=author_headers)
    assert r.status_code == 404
