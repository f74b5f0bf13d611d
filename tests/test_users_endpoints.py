from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from core.db import get_db
from routers.dependencies import get_current_user
from routers.media.api import router as media_router
from routers.users.api import router as users_router


def test_session_creates_then_reuses_user(make_client, test_db):
    client = make_client(users_router)

    created = client.post("/session", json={"name": "gina"})
    again = client.post("/session", json={"name": "gina"})

    assert created.status_code == 201
    assert created.json()["created"] is True
    assert again.json()["identifier"] == created.json()["identifier"]
    assert again.json()["created"] is False


def test_session_rejects_invalid_name(make_client):
    client = make_client(users_router)

    response = client.post("/session", json={"name": "a b"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_rename_conflict_is_409(make_client, users):
    client = make_client(users_router, users["bob"])

    response = client.put("/user", json={"name": "alice"})

    assert response.status_code == 409
    assert response.json() == {"error": "Username already taken"}


def test_search_users(make_client, users):
    client = make_client(users_router, users["alice"])

    response = client.get("/users", params={"query": "o"})

    assert response.status_code == 200
    assert {u["name"] for u in response.json()["users"]} == {"bob", "carol"}


def test_photo_upload_and_fetch(make_client, users, png_bytes):
    client = make_client(users_router, users["alice"])

    response = client.put(
        f"/user/{users['alice']}/photo",
        files={"photo": ("me.png", png_bytes, "image/png")},
    )
    assert response.status_code == 200
    media_id = response.json()["new_photo_id"]

    media_client = make_client(media_router)
    fetched = media_client.get(f"/media/{media_id}")
    assert fetched.status_code == 200
    assert fetched.content == png_bytes
    assert fetched.headers["content-type"] == "image/png"


def test_photo_upload_for_someone_else_is_forbidden(make_client, users, png_bytes):
    client = make_client(users_router, users["alice"])

    response = client.put(
        f"/user/{users['bob']}/photo",
        files={"photo": ("me.png", png_bytes, "image/png")},
    )

    assert response.status_code == 403


def test_missing_media_is_404(make_client):
    client = make_client(media_router)

    assert client.get("/media/media404").status_code == 404


def test_current_user_resolves_headers(test_db, users):
    app = FastAPI()

    @app.get("/whoami")
    def whoami(current_user = Depends(get_current_user)):
        return {"id": current_user.id, "name": current_user.name}

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)

    assert client.get("/whoami", headers={"X-User-ID": users["bob"]}).json()["name"] == "bob"
    assert (
        client.get("/whoami", headers={"Authorization": f"Bearer {users['carol']}"}).json()["name"]
        == "carol"
    )
    assert client.get("/whoami").status_code == 401
    assert client.get("/whoami", headers={"X-User-ID": "unknown00000"}).status_code == 401
