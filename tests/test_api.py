"""
End-to-end checks through the HTTP surface with a temporary data directory.
"""
from __future__ import annotations

import json

from sqlalchemy.exc import OperationalError

from courier.core.security import is_hashed
from courier.domain.tracking import TRACKING_PATTERN


def _create(client, form, **kwargs):
    resp = client.post("/api/admin/packages", data=form, **kwargs)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------- auth
def test_admin_routes_require_session(client):
    for method, url in (
        ("get", "/api/admin/packages"),
        ("post", "/api/admin/packages"),
        ("put", "/api/admin/packages/1"),
        ("delete", "/api/admin/packages/1"),
        ("get", "/api/admin/contacts"),
    ):
        resp = getattr(client, method)(url)
        assert resp.status_code == 401, url
        assert resp.json() == {"message": "Admin authentication required"}


def test_wrong_password_sets_no_cookie(client):
    resp = client.post("/api/admin/login", json={"username": "admin", "password": "nope"})

    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid credentials"}
    assert "session" not in resp.cookies
    assert client.get("/api/admin/packages").status_code == 401


def test_login_requires_both_fields(client):
    resp = client.post("/api/admin/login", json={"username": "admin"})

    assert resp.status_code == 400
    assert resp.json() == {"message": "Username and password required"}


def test_login_accepts_form_body(client):
    resp = client.post("/api/admin/login", data={"username": "admin", "password": "admin123"})

    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "admin"


def test_session_lifecycle(client):
    assert client.get("/api/admin/session").status_code == 401
    assert client.get("/api/admin/session").json() == {"isAdmin": False}

    resp = client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Login successful"
    assert "httponly" in resp.headers["set-cookie"].lower()

    assert client.get("/api/admin/session").json() == {"isAdmin": True}

    resp = client.post("/api/admin/logout")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logout successful"}
    assert client.get("/api/admin/session").status_code == 401
    assert client.get("/api/admin/packages").status_code == 401


def test_logout_failure_reports_500(admin_client, app, monkeypatch):
    def broken(token):
        raise OperationalError("DELETE", {}, Exception("disk I/O error"))

    monkeypatch.setattr(app.state.auth_service.sessions.repository, "delete", broken)
    resp = admin_client.post("/api/admin/logout")

    assert resp.status_code == 500
    assert resp.json() == {"message": "Logout failed"}


def test_seeded_admin_password_is_hashed(client, env):
    users = json.loads((env.data_dir / "users.json").read_text(encoding="utf-8"))

    assert [u["username"] for u in users] == ["admin"]
    assert is_hashed(users[0]["password"])
    assert "admin123" not in users[0]["password"]


def test_legacy_plaintext_user_is_upgraded(env):
    env.data_dir.mkdir(parents=True)
    (env.data_dir / "users.json").write_text(
        json.dumps([{"id": 1, "username": "ops", "password": "legacy-pass"}]), encoding="utf-8"
    )
    from fastapi.testclient import TestClient

    from courier.app import create_app

    with TestClient(create_app()) as client:
        resp = client.post("/api/admin/login", json={"username": "ops", "password": "legacy-pass"})
        assert resp.status_code == 200

    users = json.loads((env.data_dir / "users.json").read_text(encoding="utf-8"))
    assert is_hashed(users[0]["password"])


# ---------------------------------------------------------------- packages
def test_create_package(admin_client, package_form):
    del package_form["status"]
    pkg = _create(admin_client, package_form)

    assert pkg["id"] == 1
    assert TRACKING_PATTERN.fullmatch(pkg["trackingNumber"])
    assert pkg["status"] == "On Hold"
    assert pkg["sender"] == {"name": "Alice", "address": "1 Main St"}
    assert pkg["currentLocation"] == {"address": "Central Depot", "lat": 40.7128, "lng": -74.006}
    assert pkg["packageDetails"]["color"] == "Brown"
    assert pkg["createdAt"] == pkg["updatedAt"]
    assert "photo" not in pkg

    listed = admin_client.get("/api/admin/packages").json()
    assert [p["trackingNumber"] for p in listed] == [pkg["trackingNumber"]]


def test_create_rejects_incomplete_group(admin_client, package_form):
    del package_form["receiver[address]"]
    resp = admin_client.post("/api/admin/packages", data=package_form)

    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid package data"}
    assert admin_client.get("/api/admin/packages").json() == []


def test_create_rejects_bad_coordinates_and_status(admin_client, package_form):
    assert admin_client.post("/api/admin/packages", data={**package_form, "currentLocationLat": "123"}).status_code == 400
    assert admin_client.post("/api/admin/packages", data={**package_form, "currentLocationLng": "east"}).status_code == 400
    assert admin_client.post("/api/admin/packages", data={**package_form, "status": "Lost"}).status_code == 400


def test_partial_update_keeps_other_fields(admin_client, package_form):
    pkg = _create(admin_client, package_form)

    resp = admin_client.put(f"/api/admin/packages/{pkg['id']}", data={"status": "Delivered"})

    assert resp.status_code == 200
    updated = resp.json()
    assert updated["status"] == "Delivered"
    for key in ("id", "trackingNumber", "sender", "receiver", "currentLocation", "packageDetails", "createdAt"):
        assert updated[key] == pkg[key]
    assert updated["updatedAt"] > pkg["updatedAt"]


def test_update_rejects_half_group(admin_client, package_form):
    pkg = _create(admin_client, package_form)

    resp = admin_client.put(f"/api/admin/packages/{pkg['id']}", data={"sender[name]": "Carol"})

    assert resp.status_code == 400
    assert admin_client.get("/api/admin/packages").json()[0]["sender"]["name"] == "Alice"


def test_update_and_delete_missing(admin_client):
    assert admin_client.put("/api/admin/packages/99", data={"status": "Delivered"}).status_code == 404
    assert admin_client.delete("/api/admin/packages/99").status_code == 404
    resp = admin_client.delete("/api/admin/packages/abc")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Package not found"}


def test_delete_package(admin_client, package_form):
    pkg = _create(admin_client, package_form)

    resp = admin_client.delete(f"/api/admin/packages/{pkg['id']}")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Package deleted successfully"}
    assert admin_client.get(f"/api/track/{pkg['trackingNumber']}").status_code == 404


def test_ids_keep_growing_after_delete(admin_client, package_form):
    first = _create(admin_client, package_form)
    second = _create(admin_client, package_form)
    admin_client.delete(f"/api/admin/packages/{first['id']}")

    third = _create(admin_client, package_form)

    assert third["id"] == second["id"] + 1


# ---------------------------------------------------------------- photos
def test_create_with_photo(admin_client, package_form, png_bytes, env):
    pkg = _create(admin_client, package_form, files={"photo": ("parcel.png", png_bytes, "image/png")})

    assert pkg["photo"] == f"{pkg['trackingNumber']}.png"
    assert (env.uploads_dir / pkg["photo"]).read_bytes() == png_bytes
    assert not list(env.uploads_dir.glob("*.part"))

    served = admin_client.get(f"/uploads/{pkg['photo']}")
    assert served.status_code == 200
    assert served.content == png_bytes


def test_create_with_bad_photo_stores_nothing(admin_client, package_form, env):
    resp = admin_client.post(
        "/api/admin/packages",
        data=package_form,
        files={"photo": ("notes.txt", b"not an image", "text/plain")},
    )

    assert resp.status_code == 400
    assert admin_client.get("/api/admin/packages").json() == []
    assert list(env.uploads_dir.iterdir()) == []


def test_update_replaces_photo(admin_client, package_form, png_bytes, env):
    pkg = _create(admin_client, package_form)

    resp = admin_client.put(
        f"/api/admin/packages/{pkg['id']}",
        data={"adminNotes": "fragile"},
        files={"photo": ("PARCEL.PNG", png_bytes, "image/png")},
    )

    assert resp.status_code == 200
    updated = resp.json()
    assert updated["photo"] == f"{pkg['trackingNumber']}.PNG"
    assert updated["adminNotes"] == "fragile"
    assert (env.uploads_dir / updated["photo"]).exists()


# ---------------------------------------------------------------- public
def test_track_is_case_insensitive(admin_client, package_form):
    pkg = _create(admin_client, package_form)
    admin_client.post("/api/admin/logout")

    resp = admin_client.get(f"/api/track/{pkg['trackingNumber'].lower()}")

    assert resp.status_code == 200
    assert resp.json()["id"] == pkg["id"]


def test_track_unknown(client):
    resp = client.get("/api/track/ZZZZZZZZ")

    assert resp.status_code == 404
    assert resp.json() == {"message": "Package not found"}


def test_contact_submission(client, admin_client, env):
    body = {
        "firstName": "Ana",
        "lastName": "Lima",
        "email": "ana@example.com",
        "phone": "555-0100",
        "serviceInterest": "Express",
        "message": "Do you ship abroad?",
    }
    resp = client.post("/api/contact", json=body)

    assert resp.status_code == 201
    assert resp.json() == {"message": "Contact form submitted successfully", "id": 1}
    contacts = admin_client.get("/api/admin/contacts").json()
    assert contacts[0]["email"] == "ana@example.com"
    assert contacts[0]["createdAt"].endswith("Z")


def test_contact_rejects_bad_email(client, env):
    resp = client.post(
        "/api/contact",
        json={
            "firstName": "Ana",
            "lastName": "Lima",
            "email": "nope",
            "phone": "555-0100",
            "serviceInterest": "Express",
            "message": "Hi",
        },
    )

    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid contact form data"}
    assert json.loads((env.data_dir / "contacts.json").read_text(encoding="utf-8")) == []


def test_security_headers_present(client):
    resp = client.get("/api/track/ZZZZZZZZ")

    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_update_can_clear_admin_notes(admin_client, package_form):
    pkg = _create(admin_client, {**package_form, "adminNotes": "fragile"})
    assert pkg["adminNotes"] == "fragile"

    resp = admin_client.put(f"/api/admin/packages/{pkg['id']}", data={**package_form, "adminNotes": ""})

    assert resp.status_code == 200
    assert resp.json()["adminNotes"] == ""
    assert admin_client.get(f"/api/track/{pkg['trackingNumber']}").json()["adminNotes"] == ""


def test_malformed_stored_package_does_not_break_reads(client, admin_client, package_form, env):
    good = _create(admin_client, package_form)
    path = env.data_dir / "packages.json"
    records = json.loads(path.read_text(encoding="utf-8"))
    records.append({"id": 50, "trackingNumber": "BROKEN01"})
    path.write_text(json.dumps(records), encoding="utf-8")

    assert client.get("/api/track/BROKEN01").status_code == 404
    assert [p["id"] for p in admin_client.get("/api/admin/packages").json()] == [good["id"]]
    assert admin_client.put("/api/admin/packages/50", data={"status": "Delivered"}).status_code == 404


def test_photo_named_like_html_is_stored_as_image(admin_client, package_form, png_bytes, env):
    pkg = _create(admin_client, package_form, files={"photo": ("x.html", png_bytes, "image/png")})

    assert pkg["photo"] == f"{pkg['trackingNumber']}.png"
    assert admin_client.get(f"/uploads/{pkg['photo']}").headers["content-type"] == "image/png"


def test_text_fields_are_stored_trimmed(client, admin_client):
    body = {
        "firstName": "  Ana ",
        "lastName": "Lima",
        "email": "ana@example.com",
        "phone": " 555-0100",
        "serviceInterest": "Express",
        "message": "Hi",
    }
    assert client.post("/api/contact", json=body).status_code == 201

    stored = admin_client.get("/api/admin/contacts").json()[0]
    assert (stored["firstName"], stored["phone"]) == ("Ana", "555-0100")


def test_blocking_handlers_run_in_threadpool(app):
    import inspect

    blocking = {
        ("/api/admin/login", "POST"),
        ("/api/contact", "POST"),
        ("/api/admin/packages", "POST"),
        ("/api/admin/packages/{package_id}", "PUT"),
    }
    seen = set()
    for route in app.routes:
        for method in getattr(route, "methods", ()) or ():
            if (route.path, method) in blocking:
                seen.add((route.path, method))
                assert not inspect.iscoroutinefunction(route.endpoint), route.path
    assert seen == blocking
