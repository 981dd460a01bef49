from __future__ import annotations

from datetime import timedelta

from sqlmodel import select

from nexus import crud
from nexus.enums import SubscriptionStatus
from nexus.models import Subscription, User, utc_now
from nexus.worker import scheduler, tasks


def _set_status(db, user: User, status: SubscriptionStatus, expires_at) -> None:
    crud.update_subscription(session=db, user_id=user.id, status=status, expires_at=expires_at)


def test_expire_lapsed_subscriptions(db, make_user):
    now = utc_now()
    lapsed, _ = make_user()
    cancelled, _ = make_user()
    current, _ = make_user()
    open_ended, _ = make_user()
    _set_status(db, lapsed, SubscriptionStatus.active, now - timedelta(hours=1))
    _set_status(db, cancelled, SubscriptionStatus.cancelled, now - timedelta(hours=1))
    _set_status(db, current, SubscriptionStatus.active, now + timedelta(days=3))
    db.add(
        Subscription(
            user_id=lapsed.id,
            price_id="nexus_monthly",
            status=SubscriptionStatus.active,
            current_period_end=now - timedelta(hours=1),
        )
    )
    db.commit()

    assert tasks.expire_lapsed_subscriptions(db, now=now) == 2

    db.expire_all()
    statuses = {u.id: SubscriptionStatus(u.subscription_status) for u in db.exec(select(User)).all()}
    assert statuses[lapsed.id] == SubscriptionStatus.expired
    assert statuses[cancelled.id] == SubscriptionStatus.expired
    assert statuses[current.id] == SubscriptionStatus.active
    assert statuses[open_ended.id] == SubscriptionStatus.active

    sub = db.exec(select(Subscription).where(Subscription.user_id == lapsed.id)).one()
    assert SubscriptionStatus(sub.status) == SubscriptionStatus.expired


def test_expire_job_skips_when_locked(monkeypatch):
    calls = []
    monkeypatch.setattr(tasks, "acquire_lock", lambda *a, **kw: False)
    monkeypatch.setattr(tasks, "expire_lapsed_subscriptions", lambda *a, **kw: calls.append(1))

    tasks.expire_subscriptions()

    assert calls == []


def test_expire_job_releases_lock(monkeypatch):
    released = []
    monkeypatch.setattr(tasks, "acquire_lock", lambda *a, **kw: True)
    monkeypatch.setattr(tasks, "release_lock", lambda key, value: released.append(key))
    monkeypatch.setattr(tasks, "expire_lapsed_subscriptions", lambda *a, **kw: 0)

    tasks.expire_subscriptions()

    assert released == [tasks.EXPIRE_LOCK_KEY]


def test_scheduler_registers_hourly_job():
    job = scheduler.build_scheduler().get_job("expire_subscriptions")
    assert job is not None
    assert str(job.trigger.fields[6]) == "0"
