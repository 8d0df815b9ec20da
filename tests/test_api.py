import json
import runpy
import uuid

import uvicorn
from fastapi.testclient import TestClient

from conftest import auth_headers, property_data
from rentnest import main

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 32


def multipart_fields(data):
    return {
        key: json.dumps(value) if isinstance(value, (dict, list)) else value
        for key, value in data.items()
    }


# ─── Service info ─────────────────────────────────────────────────────────────

def test_root_and_health(client):
    assert client.get("/").json()["status"] == "active"
    assert client.get("/health").json()["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "NotFound", "message": "Route not found"}

    response = client.delete("/health")
    assert response.status_code == 405
    assert response.json()["success"] is False


def test_startup_creates_tables(monkeypatch):
    calls = []
    monkeypatch.setattr(main, "init_db", lambda: calls.append("init_db"))

    with TestClient(main.app) as started:
        assert calls == ["init_db"]
        assert started.get("/health").status_code == 200


def test_running_module_serves_with_uvicorn(monkeypatch):
    served = {}
    monkeypatch.setattr(uvicorn, "run", lambda target, **options: served.update(target=target, **options))

    runpy.run_module("rentnest.main", run_name="__main__")

    assert served["target"] == "rentnest.main:app"
    assert served["port"] == main.settings.PORT
    assert served["host"] == main.settings.HOST


# ─── Auth ─────────────────────────────────────────────────────────────────────

def test_signup_returns_token_and_user(client):
    response = client.post("/api/auth/signup", json={
        "full_name": "Sadia Rahman",
        "email": "sadia@example.com",
        "password": "secret123",
        "account_type": "owner",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["access_token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "sadia@example.com"
    assert body["user"]["account_type"] == "owner"
    assert body["user"]["subscription"]["plan"] == "free"
    assert "password" not in body["user"]
    assert "password_hash" not in body["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


def test_signup_duplicate_email_conflicts(client, owner):
    response = client.post("/api/auth/signup", json={
        "full_name": "Copy",
        "email": "owner@example.com",
        "password": "secret123",
        "account_type": "tenant",
    })
    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateIdentity"


def test_signup_without_email_or_mobile_is_rejected(client):
    response = client.post("/api/auth/signup", json={
        "full_name": "Nobody",
        "email": "",
        "password": "secret123",
        "account_type": "tenant",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_signup_with_bad_email_is_rejected(client):
    response = client.post("/api/auth/signup", json={
        "full_name": "Typo",
        "email": "not-an-email",
        "password": "secret123",
        "account_type": "tenant",
    })
    assert response.status_code == 400


def test_login_success_and_uniform_failures(client, owner, other_owner):
    ok = client.post("/api/auth/login", json={"email_or_mobile": "owner@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == str(owner.id)

    by_mobile = client.post("/api/auth/login", json={"email_or_mobile": "01898765432", "password": "secret123"})
    assert by_mobile.status_code == 200

    wrong = client.post("/api/auth/login", json={"email_or_mobile": "owner@example.com", "password": "nope-nope"})
    unknown = client.post("/api/auth/login", json={"email_or_mobile": "nosuchuser@example.com", "password": "x"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_login_disabled_account(client, identity, owner):
    identity.set_active(owner.id, False)
    response = client.post("/api/auth/login", json={"email_or_mobile": "owner@example.com", "password": "secret123"})
    assert response.status_code == 403
    assert response.json()["error"] == "AccountDisabled"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


# ─── Create ───────────────────────────────────────────────────────────────────

def test_create_property_with_images(client, owner, blob_store):
    data = multipart_fields(property_data())
    data["image_captions"] = json.dumps(["Living room"])
    files = [
        ("images", ("living.png", PNG, "image/png")),
        ("images", ("bath.jpg", b"\xff\xd8\xff" + b"0" * 16, "application/octet-stream")),
    ]

    response = client.post("/api/properties/", data=data, files=files, headers=auth_headers(owner))

    assert response.status_code == 201
    body = response.json()
    assert body["owner_id"] == str(owner.id)
    assert body["is_available"] is True
    assert body["location"]["division"] == "Dhaka"
    assert [p["caption"] for p in body["photos"]] == ["Living room", None]
    assert body["photos"][1]["url"].endswith("2.jpg")
    assert blob_store.uploads == 2


def test_create_property_requires_owner_account(client, tenant):
    response = client.post("/api/properties/", data=multipart_fields(property_data()), headers=auth_headers(tenant))
    assert response.status_code == 403


def test_create_property_requires_authentication(client):
    response = client.post("/api/properties/", data=multipart_fields(property_data()))
    assert response.status_code == 401


def test_create_property_malformed_json_field(client, owner):
    data = multipart_fields(property_data())
    data["location"] = "{division: Dhaka"
    response = client.post("/api/properties/", data=data, headers=auth_headers(owner))
    assert response.status_code == 400
    assert "location" in response.json()["message"]


def test_create_property_missing_field(client, owner):
    data = multipart_fields(property_data())
    del data["rent"]
    response = client.post("/api/properties/", data=data, headers=auth_headers(owner))
    assert response.status_code == 400
    assert "rent" in response.json()["message"]


def test_create_property_rejects_non_image_upload(client, owner, blob_store):
    files = [("images", ("notes.txt", b"hello", "text/plain"))]
    response = client.post(
        "/api/properties/", data=multipart_fields(property_data()), files=files, headers=auth_headers(owner)
    )
    assert response.status_code == 400
    assert blob_store.uploads == 0


def test_create_property_upload_failure_is_generic(client, owner, blob_store):
    blob_store.fail_on = 1
    files = [("images", ("living.png", PNG, "image/png"))]
    response = client.post(
        "/api/properties/", data=multipart_fields(property_data()), files=files, headers=auth_headers(owner)
    )
    assert response.status_code == 502
    assert "blob store unavailable" not in response.json()["message"]
    assert client.get("/api/properties/").json()["total"] == 0


def test_create_property_from_json_with_hosted_photos(client, owner, blob_store):
    data = property_data(photos=[
        {"url": "https://cdn.test/front.jpg", "caption": "Front"},
        {"url": "https://cdn.test/kitchen.jpg"},
    ])

    response = client.post("/api/properties/", json=data, headers=auth_headers(owner))

    assert response.status_code == 201
    body = response.json()
    assert body["owner_id"] == str(owner.id)
    assert body["rent"]["amount"] == 3000
    assert [p["url"] for p in body["photos"]] == ["https://cdn.test/front.jpg", "https://cdn.test/kitchen.jpg"]
    assert [p["caption"] for p in body["photos"]] == ["Front", None]
    assert blob_store.uploads == 0


def test_create_property_from_json_validates_like_multipart(client, owner):
    data = property_data()
    del data["contact"]
    response = client.post("/api/properties/", json=data, headers=auth_headers(owner))
    assert response.status_code == 400
    assert "contact" in response.json()["message"]

    response = client.post("/api/properties/", json=[data], headers=auth_headers(owner))
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_create_property_multipart_photos_come_before_uploads(client, owner, blob_store):
    data = multipart_fields(property_data(photos=[{"url": "https://cdn.test/street.jpg", "caption": "Street"}]))
    files = [("images", ("living.png", PNG, "image/png"))]

    response = client.post("/api/properties/", data=data, files=files, headers=auth_headers(owner))

    assert response.status_code == 201
    photos = response.json()["photos"]
    assert photos[0] == {"url": "https://cdn.test/street.jpg", "caption": "Street"}
    assert photos[1]["url"].startswith("https://blobs.test/media/")
    assert blob_store.uploads == 1


# ─── Read ─────────────────────────────────────────────────────────────────────

def test_list_properties_with_filters(client, make_property):
    make_property(title="Lakeview Apartment", rent={"amount": 3000})
    make_property(title="Penthouse", rent={"amount": 6000})
    make_property(title="Hidden", is_available=False)

    body = client.get("/api/properties/").json()
    assert body["total"] == 2
    assert body["total_pages"] == 1
    assert body["current_page"] == 1

    body = client.get("/api/properties/", params={"min_rent": 1000, "max_rent": 5000}).json()
    assert [p["title"] for p in body["properties"]] == ["Lakeview Apartment"]

    body = client.get("/api/properties/", params={"search": "LAKE"}).json()
    assert body["count"] == 1


def test_list_properties_pagination(client, make_property):
    for i in range(1, 26):
        make_property(title=f"Listing {i}")

    body = client.get("/api/properties/", params={"page": 2, "limit": 10}).json()
    assert body["total"] == 25
    assert body["total_pages"] == 3
    assert body["properties"][0]["title"] == "Listing 15"
    assert body["properties"][-1]["title"] == "Listing 6"


def test_list_properties_rejects_bad_query(client):
    assert client.get("/api/properties/", params={"page": 0}).status_code == 400
    assert client.get("/api/properties/", params={"property_type": "castle"}).status_code == 400


def test_my_properties(client, make_property, owner, tenant):
    make_property(title="Visible")
    make_property(title="Paused", is_available=False)

    response = client.get("/api/properties/my-properties", headers=auth_headers(owner))
    assert response.status_code == 200
    assert [p["title"] for p in response.json()] == ["Paused", "Visible"]

    assert client.get("/api/properties/my-properties", headers=auth_headers(tenant)).status_code == 403


def test_get_property(client, make_property):
    prop = make_property()
    response = client.get(f"/api/properties/{prop.id}")
    assert response.status_code == 200
    assert response.json()["title"] == "Cozy Flat"

    assert client.get(f"/api/properties/{uuid.uuid4()}").status_code == 404
    assert client.get("/api/properties/not-an-id").status_code == 404


def test_listings_carry_owner_summary(client, make_property, owner, other_owner):
    prop = make_property()
    make_property(owner_user=other_owner, title="Across town")

    listed = {p["title"]: p["owner"] for p in client.get("/api/properties/").json()["properties"]}
    assert listed["Cozy Flat"]["full_name"] == "Olivia Owner"
    assert listed["Cozy Flat"]["email"] == "owner@example.com"
    assert listed["Across town"]["mobile"] == "01898765432"

    single = client.get(f"/api/properties/{prop.id}").json()["owner"]
    assert single == {
        "id": str(owner.id),
        "full_name": "Olivia Owner",
        "email": "owner@example.com",
        "mobile": None,
        "account_type": "owner",
    }

    mine = client.get("/api/properties/my-properties", headers=auth_headers(owner)).json()
    assert mine[0]["owner"]["id"] == str(owner.id)
    assert "password_hash" not in mine[0]["owner"]


# ─── Update / delete / toggle ─────────────────────────────────────────────────

def test_update_property(client, make_property, owner, other_owner):
    prop = make_property()

    forbidden = client.put(f"/api/properties/{prop.id}", json={"title": "Mine now"}, headers=auth_headers(other_owner))
    assert forbidden.status_code == 403

    missing = client.put(f"/api/properties/{uuid.uuid4()}", json={"title": "x"}, headers=auth_headers(other_owner))
    assert missing.status_code == 404

    response = client.put(
        f"/api/properties/{prop.id}",
        json={"title": "Updated Flat", "owner_id": str(other_owner.id)},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Updated Flat"
    assert response.json()["owner_id"] == str(owner.id)
    assert response.json()["rent"]["amount"] == 3000


def test_toggle_availability(client, make_property, owner):
    prop = make_property()
    url = f"/api/properties/{prop.id}/toggle-availability"

    assert client.patch(url, headers=auth_headers(owner)).json()["is_available"] is False
    assert client.get("/api/properties/").json()["total"] == 0
    assert client.patch(url, headers=auth_headers(owner)).json()["is_available"] is True


def test_delete_property(client, make_property, owner, other_owner):
    prop = make_property()

    assert client.delete(f"/api/properties/{prop.id}", headers=auth_headers(other_owner)).status_code == 403

    response = client.delete(f"/api/properties/{prop.id}", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/api/properties/{prop.id}").status_code == 404
