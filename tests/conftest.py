import pytest
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings
from util.cert import TokenService
from util.image_storage import InMemoryStorageBackend, ObjectUploadGateway
from util.posts import InMemoryPostRepository
from util.users import InMemoryUserRepository

SECRET = "test-secret-that-is-long-enough-for-hs256"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        secret=SECRET,
        storage="memory",
        upload_folder=str(tmp_path / "uploads"),
        frontend_url="http://blog.example.test",
    )


@pytest.fixture()
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def posts() -> InMemoryPostRepository:
    return InMemoryPostRepository()


@pytest.fixture()
def backend() -> InMemoryStorageBackend:
    return InMemoryStorageBackend(base_url="https://covers.example.test")


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(SECRET)


@pytest.fixture()
def gateway(backend, tmp_path) -> ObjectUploadGateway:
    return ObjectUploadGateway(backend, staging_dir=str(tmp_path / "staging"))


@pytest.fixture()
def app(settings, users, posts, backend):
    return create_app(settings, users=users, posts=posts, storage_backend=backend)


@pytest.fixture()
def make_client(app):
    """Each client has its own cookie jar, i.e. its own browser."""

    def factory() -> TestClient:
        return TestClient(app)

    return factory


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()


def signup(client: TestClient, username: str, password: str) -> dict:
    response = client.post("/register", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]
