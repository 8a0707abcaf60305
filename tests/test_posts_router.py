from datetime import datetime

from bson import ObjectId
from fastapi.testclient import TestClient

from conftest import signup
from main import create_app
from util.errors import UploadError
from util.image_storage import InMemoryStorageBackend


class BrokenBackend(InMemoryStorageBackend):
    def put(self, path, key):
        raise UploadError("bucket unreachable")


class CrashingBackend(InMemoryStorageBackend):
    def put(self, path, key):
        raise RuntimeError("unexpected")


def create_post(client, title="T", summary="S", content="C", file=None):
    files = {"file": file} if file else None
    return client.post(
        "/post",
        data={"title": title, "summary": summary, "content": content},
        files=files,
    )


def test_created_post_is_readable_with_author(client):
    signup(client, "alice", "pw1")

    created = create_post(client)
    assert created.status_code == 201
    post_id = created.json()["data"]["_id"]

    response = client.get(f"/post/{post_id}")

    assert response.status_code == 200
    post = response.json()["data"]
    assert (post["title"], post["summary"], post["content"]) == ("T", "S", "C")
    assert post["author"]["username"] == "alice"
    assert post["cover"] is None


def test_create_with_cover_resolves_url(client, backend):
    signup(client, "alice", "pw1")

    created = create_post(client, file=("cover.png", b"\x89PNG", "image/png")).json()["data"]

    (key,) = backend.objects
    assert key.endswith("-cover.png")
    assert created["cover"] == f"https://covers.example.test/{key}"
    assert client.get(f"/post/{created['_id']}").json()["data"]["cover"] == created["cover"]
    assert client.get("/post").json()["data"][0]["cover"] == created["cover"]


def test_create_without_cookie_is_unauthenticated(client, posts, backend):
    response = create_post(client, file=("cover.png", b"\x89PNG", "image/png"))

    assert response.status_code == 401
    assert posts.posts == {}
    assert backend.objects == {}


def test_create_missing_field(client):
    signup(client, "alice", "pw1")
    response = client.post("/post", data={"title": "T", "summary": "S"})
    assert response.status_code == 400


def test_edit_by_author(client):
    signup(client, "alice", "pw1")
    created = create_post(client, file=("cover.png", b"img", "image/png")).json()["data"]

    response = client.put(
        "/post",
        data={"id": created["_id"], "title": "T2", "summary": "S2", "content": "C2"},
    )

    assert response.status_code == 200
    edited = response.json()["data"]
    assert (edited["title"], edited["summary"], edited["content"]) == ("T2", "S2", "C2")
    assert edited["cover"] == created["cover"]
    assert edited["author"]["_id"] == created["author"]["_id"]


def test_edit_with_new_cover(client, backend):
    signup(client, "alice", "pw1")
    created = create_post(client).json()["data"]

    response = client.put(
        "/post",
        data={"id": created["_id"], "title": "T", "summary": "S", "content": "C"},
        files={"file": ("new.png", b"new", "image/png")},
    )

    (key,) = backend.objects
    assert response.json()["data"]["cover"].endswith(key)


def test_edit_by_other_user_is_forbidden(make_client):
    alice = make_client()
    bob = make_client()
    signup(alice, "alice", "pw1")
    signup(bob, "bob", "pw2")
    created = create_post(alice).json()["data"]

    response = bob.put(
        "/post",
        data={"id": created["_id"], "title": "X", "summary": "X", "content": "X"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "You are not the author"
    post = bob.get(f"/post/{created['_id']}").json()["data"]
    assert (post["title"], post["summary"], post["content"]) == ("T", "S", "C")
    assert post["author"]["username"] == "alice"


def test_edit_missing_post(client):
    signup(client, "alice", "pw1")
    response = client.put(
        "/post",
        data={"id": str(ObjectId()), "title": "T", "summary": "S", "content": "C"},
    )
    assert response.status_code == 404


def test_get_missing_post(client):
    assert client.get(f"/post/{ObjectId()}").status_code == 404
    assert client.get("/post/not-an-id").status_code == 404


def test_list_returns_twenty_newest(client):
    signup(client, "alice", "pw1")
    for i in range(25):
        create_post(client, title=f"post {i}")

    data = client.get("/post").json()["data"]

    assert len(data) == 20
    assert data[0]["title"] == "post 24"
    created = [datetime.fromisoformat(post["createdAt"]) for post in data]
    assert created == sorted(created, reverse=True)
    assert all(post["author"]["username"] == "alice" for post in data)


def test_list_empty(client):
    response = client.get("/post")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_empty_field_is_rejected(client, posts):
    signup(client, "alice", "pw1")

    response = create_post(client, title="")

    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"
    assert posts.posts == {}


def test_storage_failure_is_structured_500(settings, users, posts):
    app = create_app(settings, users=users, posts=posts, storage_backend=BrokenBackend())
    client = TestClient(app)
    signup(client, "alice", "pw1")

    response = create_post(client, file=("cover.png", b"img", "image/png"))

    assert response.status_code == 500
    assert response.json() == {
        "status": "error",
        "code": 500,
        "message": "bucket unreachable",
    }
    assert posts.posts == {}


def test_unexpected_error_is_structured_500(settings, users, posts):
    app = create_app(settings, users=users, posts=posts, storage_backend=CrashingBackend())
    client = TestClient(app, raise_server_exceptions=False)
    signup(client, "alice", "pw1")

    response = create_post(client, file=("cover.png", b"img", "image/png"))

    assert response.status_code == 500
    assert response.json() == {
        "status": "error",
        "code": 500,
        "message": "An internal server error occurred",
    }
    assert posts.posts == {}
