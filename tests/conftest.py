from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


class TickingClock:
    """Each call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret", bcrypt_rounds=4, database_name="bizmate_test")


@pytest.fixture
def db():
    return mongomock.MongoClient()["bizmate_test"]


@pytest.fixture
def app(settings, db):
    return create_app(settings, db=db, clock=TickingClock())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def signup(client: TestClient, email: str, password: str = "s3cret", name: str = "Alice") -> dict:
    resp = client.post("/api/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 200, resp.text
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def auth(client) -> dict:
    return signup(client, "alice@example.com")


@pytest.fixture
def other_auth(client) -> dict:
    return signup(client, "bob@example.com", name="Bob")
