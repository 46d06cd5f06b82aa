from fastapi.testclient import TestClient

from stockpile.main import create_app

from conftest import bearer, register


def _login(client, email):
    return bearer(register(client, email).json()["session_token"])


def test_owner_scenario(client, clock):
    u1 = register(client, "a@x.com").json()["session_token"]
    u2 = _login(client, "b@x.com")

    created = client.post(
        "/api/items",
        data={"name": "Widget", "quantity": "1"},
        headers=bearer(u1),
    )
    assert created.status_code == 201
    item = created.json()["item"]

    listing = client.get("/api/items", headers=bearer(u1))
    assert listing.status_code == 200
    assert [i["name"] for i in listing.json()["items"]] == ["Widget"]

    stolen = client.put(f"/api/items/{item['id']}", data={"name": "Mine now"}, headers=u2)
    assert stolen.status_code == 404
    assert stolen.json() == {"success": False, "error": "Item not found"}

    assert client.post("/api/auth/logout", headers=bearer(u1)).status_code == 200
    assert client.get("/api/items", headers=bearer(u1)).status_code == 401


def test_items_require_authentication(client):
    assert client.get("/api/items").status_code == 401
    assert client.post("/api/items", data={"name": "Widget"}).status_code == 401


def test_list_is_newest_first_and_clamped(client, clock):
    headers = _login(client, "lister@example.com")
    for name in ("First", "Second", "Third"):
        client.post("/api/items", data={"name": name}, headers=headers)
        clock.advance(seconds=1)

    response = client.get("/api/items", params={"limit": 500}, headers=headers)
    body = response.json()

    assert body["limit"] == 100
    assert body["total"] == 3
    assert body["page"] == 1
    assert [i["name"] for i in body["items"]] == ["Third", "Second", "First"]


def test_new_item_is_first_even_when_created_at_the_same_instant(client):
    headers = _login(client, "frozen@example.com")

    for round_number in range(10):
        created = client.post("/api/items", data={"name": f"Round {round_number}"}, headers=headers)
        listed = client.get("/api/items", headers=headers).json()

        assert listed["items"][0]["id"] == created.json()["item"]["id"]


def test_page_far_past_the_end_is_empty(client):
    headers = _login(client, "far@example.com")
    client.post("/api/items", data={"name": "Only"}, headers=headers)

    response = client.get("/api/items", params={"page": 10**18}, headers=headers)

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["total"] == 1


def test_default_page_size_comes_from_settings(settings, engine, identity_provider, clock):
    app = create_app(
        settings.model_copy(update={"items_default_page_size": 2}),
        engine=engine,
        identity_provider=identity_provider,
        clock=clock,
    )
    with TestClient(app) as client:
        headers = _login(client, "paged@example.com")
        for name in ("A", "B", "C"):
            client.post("/api/items", data={"name": name}, headers=headers)

        body = client.get("/api/items", headers=headers).json()

    assert body["limit"] == 2
    assert [i["name"] for i in body["items"]] == ["C", "B"]


def test_create_reports_all_violations(client):
    headers = _login(client, "invalid@example.com")

    response = client.post(
        "/api/items",
        data={"quantity": "lots", "image_url": "not a url"},
        headers=headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    fields = {error.split(":", 1)[0] for error in body["errors"]}
    assert fields == {"name", "quantity", "image_url"}


def test_get_update_delete_own_item(client, clock):
    headers = _login(client, "crud@example.com")
    item = client.post(
        "/api/items",
        data={"name": "Lamp", "category": "home", "quantity": "2"},
        headers=headers,
    ).json()["item"]

    fetched = client.get(f"/api/items/{item['id']}", headers=headers)
    assert fetched.json()["item"]["category"] == "home"

    clock.advance(minutes=1)
    updated = client.put(f"/api/items/{item['id']}", data={"quantity": "5"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["item"]["quantity"] == 5
    assert updated.json()["item"]["name"] == "Lamp"

    deleted = client.delete(f"/api/items/{item['id']}", headers=headers)
    assert deleted.json() == {"success": True}
    assert client.delete(f"/api/items/{item['id']}", headers=headers).status_code == 404


def test_other_users_items_are_invisible(client):
    owner = _login(client, "owner@example.com")
    other = _login(client, "other@example.com")
    item = client.post("/api/items", data={"name": "Secret"}, headers=owner).json()["item"]

    assert client.get(f"/api/items/{item['id']}", headers=other).status_code == 404
    assert client.delete(f"/api/items/{item['id']}", headers=other).status_code == 404
    assert client.get("/api/items", headers=other).json()["items"] == []
    assert client.get(f"/api/items/{item['id']}", headers=owner).status_code == 200


def test_malformed_query_uses_error_envelope(client):
    headers = _login(client, "query@example.com")

    response = client.get("/api/items", params={"page": "abc"}, headers=headers)

    assert response.status_code == 422
    assert response.json()["errors"][0].startswith("page:")


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "app": "Stockpile"}
