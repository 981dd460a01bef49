from __future__ import annotations

from nexus.api.routes.auth import build_profile


def _signup(client, username: str = "ada", password: str = "password123") -> dict:
    r = client.post(
        "/api/v1/auth/signup",
        json={"username": username, "password": password, "display_name": "Ada L"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["code"] == 0
    return body["data"]


def test_signup_login_and_profile(client):
    data = _signup(client)
    assert data["user"]["username"] == "ada"
    assert data["user"]["points_balance"] == 0
    assert data["user"]["subscription_status"] == "inactive"

    r = client.post("/api/v1/auth/login", json={"username": "ada", "password": "password123"})
    assert r.status_code == 200
    token = r.json()["data"]["access_token"]

    r = client.get("/api/v1/user/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["data"]["id"] == data["user"]["id"]


def test_signup_duplicate_username(client):
    _signup(client, username="dup")
    r = client.post(
        "/api/v1/auth/signup",
        json={"username": "dup", "password": "password123", "display_name": "Other"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == 400101


def test_login_wrong_password(client):
    _signup(client, username="grace")
    r = client.post("/api/v1/auth/login", json={"username": "grace", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json()["code"] == 401002


def test_signup_validation_error_shape(client):
    r = client.post(
        "/api/v1/auth/signup",
        json={"username": "x", "password": "short", "display_name": ""},
    )
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == 422000
    assert body["data"]


def test_session_endpoint(client, make_user):
    r = client.get("/api/v1/auth/session")
    assert r.status_code == 200
    assert r.json()["data"]["authenticated"] is False

    user, headers = make_user()
    r = client.get("/api/v1/auth/session", headers=headers)
    data = r.json()["data"]
    assert data["authenticated"] is True
    assert data["user"]["id"] == user.id
    assert data["role"] == "user"
    assert data["subscription_active"] is True


def test_update_profile(client, make_user):
    _, headers = make_user()
    r = client.put(
        "/api/v1/user/profile",
        headers=headers,
        json={"display_name": "  New Name ", "music_service": "spotify"},
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["display_name"] == "New Name"
    assert data["music_service"] == "spotify"


def test_build_profile_reads_ledger_balance(db, make_user):
    user, _ = make_user(balance=42)
    assert build_profile(db, user).points_balance == 42


def test_config_and_health(client):
    r = client.get("/api/v1/config")
    assert r.status_code == 200
    data = r.json()["data"]
    room_ids = [room["id"] for room in data["chat"]["rooms"]]
    assert "global" in room_ids
    assert "spotify" in data["music_providers"]

    r = client.get("/api/v1/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_refresh_config_reloads_file():
    from nexus.services import config_service

    cached = config_service.get_config()
    assert config_service.refresh_config() == cached
    assert config_service.default_game_reward() == 10
    assert "homework-help" in config_service.public_room_ids()
    assert set(cached["points_rules"]) == {"default_game_reward"}
    assert set(cached["chat"]) == {"rooms"}
