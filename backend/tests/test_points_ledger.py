from __future__ import annotations

import pytest
from sqlmodel import Session, func, select

from nexus import crud
from nexus.api.errors import InsufficientBalance, ValidationError
from nexus.enums import PointTransactionType
from nexus.models import PointTransaction


def _tx_count(db, user_id: int) -> int:
    return db.exec(
        select(func.count()).select_from(PointTransaction).where(PointTransaction.user_id == user_id)
    ).one()


def test_credit_and_debit_append_transactions(db, make_user):
    user, _ = make_user()

    assert crud.credit_points(session=db, user_id=user.id, amount=50, reason="game_play") == 50
    assert crud.debit_points(session=db, user_id=user.id, amount=20, reason="unlock_post") == 30
    assert crud.get_balance(session=db, user_id=user.id) == 30

    rows, count = crud.list_transactions(session=db, user_id=user.id, offset=0, limit=10)
    assert count == 2
    # newest first
    assert rows[0].type == PointTransactionType.spend
    assert rows[0].amount == -20
    assert rows[0].balance_after == 30
    assert rows[1].amount == 50


def test_debit_more_than_balance_changes_nothing(db, make_user):
    user, _ = make_user(balance=20)
    before = _tx_count(db, user.id)

    with pytest.raises(InsufficientBalance) as exc_info:
        crud.debit_points(session=db, user_id=user.id, amount=30)

    assert exc_info.value.data == {"balance": 20, "required": 30}
    assert crud.get_balance(session=db, user_id=user.id) == 20
    assert _tx_count(db, user.id) == before


@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_amounts_rejected(db, make_user, amount):
    user, _ = make_user()
    with pytest.raises(ValidationError):
        crud.credit_points(session=db, user_id=user.id, amount=amount)
    with pytest.raises(ValidationError):
        crud.debit_points(session=db, user_id=user.id, amount=amount)


def test_interleaved_credits_are_not_lost(engine, db, make_user):
    user, _ = make_user()
    user_id = user.id

    with Session(engine) as first, Session(engine) as second:
        # both sessions have read the account before either writes
        stale = crud.get_user_points(session=first, user_id=user_id)
        assert stale.balance == 0
        crud.get_user_points(session=second, user_id=user_id)

        crud.credit_points(session=second, user_id=user_id, amount=5)
        crud.credit_points(session=first, user_id=user_id, amount=10)

    assert crud.get_balance(session=db, user_id=user_id) == 15


def test_balance_and_transactions_api(client, make_user):
    _, headers = make_user(balance=100)

    r = client.get("/api/v1/points/balance", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["balance"] == 100

    r = client.get("/api/v1/points/transactions?page=1&page_size=20", headers=headers)
    assert r.status_code == 200
    tx = r.json()["data"]
    assert tx["count"] == 1
    assert tx["data"][0]["type"] == "grant"


def test_leaderboard_counts_earned_points(db, client, make_user):
    rich, headers = make_user(balance=100)
    spender, _ = make_user(balance=80)
    crud.debit_points(session=db, user_id=rich.id, amount=90)

    r = client.get("/api/v1/points/leaderboard", headers=headers)
    assert r.status_code == 200
    entries = r.json()["data"]
    assert [e["user_id"] for e in entries[:2]] == [rich.id, spender.id]
    assert entries[0]["rank"] == 1
    assert entries[0]["total_earned"] == 100


def test_admin_grant_points(client, make_user):
    _, admin_headers = make_user(admin=True)
    target, _ = make_user()

    r = client.post(
        "/api/v1/admin/points/grant",
        headers=admin_headers,
        json={"user_id": target.id, "amount": 25},
    )
    assert r.status_code == 200
    assert r.json()["data"]["balance"] == 25
