import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import settings
from main import app


@pytest.fixture
def users(monkeypatch):
    mock_db = mongomock.MongoClient()[settings.DATABASE_NAME]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db[settings.USER_COLLECTION]


@pytest.fixture
def client(users):
    return TestClient(app)


def signup(client, email="a@x.com", password="p1", **extra):
    body = {"Email": email, "Password": password, "Username": "alice", "Name": "Alice"}
    body.update(extra)
    return client.post("/signup", json=body)


@pytest.fixture
def auth_client(client):
    """A client holding the session cookie of a freshly signed-up user."""
    res = signup(client)
    assert res.status_code == 201
    return client
