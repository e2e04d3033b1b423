import pytest

from app.security import reset_rate_limits
from core.storage import MemStorage, set_storage


@pytest.fixture(autouse=True)
def storage():
    """Every test gets a fresh in-memory backend and clean rate-limit state."""
    mem = MemStorage()
    set_storage(mem)
    reset_rate_limits()
    yield mem
    set_storage(None)
    reset_rate_limits()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    import app.api as api_module

    with TestClient(api_module.app) as c:
        yield c


@pytest.fixture
def register(client):
    def _register(username="driver1", password="Passw0rd1", **extra):
        resp = client.post("/api/auth/register", json={"username": username, "password": password, **extra})
        assert resp.status_code == 201, resp.text
        return resp.json()["user"]

    return _register


@pytest.fixture
def auth_client(client, register):
    """Client logged in as a user with a linked Flex account."""
    register(amazonEmail="driver1@example.com")
    return client
