from __future__ import annotations

from decimal import Decimal

from nexus import crud


def _create_game(client, headers, **overrides) -> dict:
    payload = {"title": "Math Blaster", "game_url": "https://games.example.com/blaster"}
    payload.update(overrides)
    return client.post("/api/v1/games", headers=headers, json=payload)


def test_only_admins_manage_games(client, make_user):
    _, user_headers = make_user()
    _, admin_headers = make_user(admin=True)

    r = _create_game(client, user_headers)
    assert r.status_code == 403
    assert r.json()["code"] == 403002

    r = _create_game(client, admin_headers, game_url="http://games.example.com/blaster")
    assert r.status_code == 400
    assert r.json()["code"] == 400501

    r = _create_game(client, admin_headers)
    assert r.status_code == 200
    game_id = r.json()["data"]["id"]

    r = client.get("/api/v1/games", headers=user_headers)
    assert [g["id"] for g in r.json()["data"]] == [game_id]

    r = client.delete(f"/api/v1/games/{game_id}", headers=user_headers)
    assert r.status_code == 403
    r = client.delete(f"/api/v1/games/{game_id}", headers=admin_headers)
    assert r.status_code == 200


def test_first_play_credits_once(client, db, make_user):
    player, headers = make_user()
    _, admin_headers = make_user(admin=True)
    game_id = _create_game(client, admin_headers, points_reward=15).json()["data"]["id"]

    r = client.post(f"/api/v1/games/{game_id}/play", headers=headers)
    data = r.json()["data"]
    assert data["first_play"] is True
    assert data["points_awarded"] == 15
    assert data["balance"] == 15

    r = client.post(f"/api/v1/games/{game_id}/play", headers=headers)
    data = r.json()["data"]
    assert data["first_play"] is False
    assert data["points_awarded"] == 0
    assert data["balance"] == 15

    _, count = crud.list_transactions(session=db, user_id=player.id, offset=0, limit=10)
    assert count == 1


def test_play_missing_game(client, make_user):
    _, headers = make_user()
    r = client.post("/api/v1/games/42/play", headers=headers)
    assert r.status_code == 404
    assert r.json()["code"] == 404201


def test_merch_catalog(client, make_user):
    _, user_headers = make_user()
    _, admin_headers = make_user(admin=True)
    payload = {
        "name": "Nexus Hoodie",
        "price": "39.99",
        "stock": 12,
        "image_urls": ["https://cdn.example.com/hoodie.png"],
    }

    r = client.post("/api/v1/merch", headers=user_headers, json=payload)
    assert r.status_code == 403

    r = client.post("/api/v1/merch", headers=admin_headers, json=payload)
    assert r.status_code == 200

    r = client.get("/api/v1/merch", headers=user_headers)
    items = r.json()["data"]
    assert len(items) == 1
    assert Decimal(str(items[0]["price"])) == Decimal("39.99")
    assert items[0]["image_urls"] == ["https://cdn.example.com/hoodie.png"]


def test_music_embeds_owner_rules(client, make_user):
    _, owner_headers = make_user()
    _, other_headers = make_user()
    _, admin_headers = make_user(admin=True)

    r = client.post(
        "/api/v1/music",
        headers=owner_headers,
        json={
            "title": "Study beats",
            "provider": "spotify",
            "source_url": "https://open.spotify.com/playlist/37i9dQZF1DX8Uebhn9wzrS",
        },
    )
    assert r.status_code == 200
    embed = r.json()["data"]
    assert "https://open.spotify.com/embed/playlist/37i9dQZF1DX8Uebhn9wzrS" in embed["embed_html"]

    r = client.post(
        "/api/v1/music",
        headers=owner_headers,
        json={"title": "Bad", "provider": "spotify", "source_url": "https://example.com/x"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == 400701

    r = client.get("/api/v1/music?mine=true", headers=other_headers)
    assert r.json()["data"] == []

    r = client.delete(f"/api/v1/music/{embed['id']}", headers=other_headers)
    assert r.status_code == 403
    r = client.delete(f"/api/v1/music/{embed['id']}", headers=admin_headers)
    assert r.status_code == 200
