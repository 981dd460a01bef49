from __future__ import annotations

from datetime import timedelta

from sqlmodel import select

from nexus.core.config import settings
from nexus.models import Subscription, utc_now


def _event(event_id: str, event_type: str, user_id: int, *, days: int = 30) -> dict:
    period_end = utc_now() + timedelta(days=days)
    return {
        "id": event_id,
        "type": event_type,
        "user_id": user_id,
        "customer_id": "cus_123",
        "current_period_end_ms": int(period_end.timestamp() * 1000),
    }


def test_checkout_returns_payment_url(client, make_user):
    _, headers = make_user(subscribed=False)
    r = client.post("/api/v1/subscription/checkout", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["url"].startswith(settings.FRONTEND_BASE_URL)


def test_webhook_activates_and_is_idempotent(client, db, make_user):
    user, headers = make_user(subscribed=False)

    r = client.get("/api/v1/subscription/status", headers=headers)
    assert r.json()["data"]["active"] is False

    event = _event("evt_1", "subscription.activated", user.id)
    r = client.post("/api/v1/subscription/webhook", json=event)
    assert r.status_code == 200
    assert r.json()["data"] == {"received": True}

    r = client.post("/api/v1/subscription/webhook", json=event)
    assert r.json()["data"] == {"received": True, "duplicate": True}

    r = client.get("/api/v1/subscription/status", headers=headers)
    data = r.json()["data"]
    assert data["status"] == "active"
    assert data["active"] is True

    rows = db.exec(select(Subscription).where(Subscription.user_id == user.id)).all()
    assert len(rows) == 1
    assert rows[0].provider_customer_id == "cus_123"

    r = client.get("/api/v1/homework/posts", headers=headers)
    assert r.status_code == 200


def test_cancelled_subscription_keeps_paid_period(client, make_user):
    user, headers = make_user(subscribed=False)
    client.post("/api/v1/subscription/webhook", json=_event("evt_a", "subscription.activated", user.id))
    client.post("/api/v1/subscription/webhook", json=_event("evt_c", "subscription.cancelled", user.id))

    data = client.get("/api/v1/subscription/status", headers=headers).json()["data"]
    assert data["status"] == "cancelled"
    assert data["active"] is True


def test_unknown_event_type_ignored(client, make_user):
    user, _ = make_user(subscribed=False)
    r = client.post(
        "/api/v1/subscription/webhook", json=_event("evt_x", "invoice.created", user.id)
    )
    assert r.json()["data"] == {"received": True, "ignored": True}


def test_webhook_secret_enforced(client, make_user, monkeypatch):
    user, _ = make_user(subscribed=False)
    monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "whsec_test")
    event = _event("evt_s", "subscription.activated", user.id)

    r = client.post("/api/v1/subscription/webhook", json=event)
    assert r.status_code == 401
    assert r.json()["code"] == 401101

    r = client.post(
        "/api/v1/subscription/webhook",
        json=event,
        headers={"Authorization": "Bearer whsec_test"},
    )
    assert r.status_code == 200


def test_renewal_without_period_end_clears_lapsed_expiry(client, db, make_user):
    user, headers = make_user(subscribed=False)
    client.post(
        "/api/v1/subscription/webhook",
        json=_event("evt_e", "subscription.expired", user.id, days=-3),
    )
    data = client.get("/api/v1/subscription/status", headers=headers).json()["data"]
    assert data["active"] is False

    renewal = _event("evt_r", "subscription.renewed", user.id)
    del renewal["current_period_end_ms"]
    r = client.post("/api/v1/subscription/webhook", json=renewal)
    assert r.json()["data"] == {"received": True}

    data = client.get("/api/v1/subscription/status", headers=headers).json()["data"]
    assert data["status"] == "active"
    assert data["active"] is True
    assert data["expires_at"] is None

    sub = db.exec(select(Subscription).where(Subscription.user_id == user.id)).one()
    assert sub.current_period_end is None

    r = client.get("/api/v1/homework/posts", headers=headers)
    assert r.status_code == 200
