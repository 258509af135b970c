import pytest
import mongomock
import pymongo
from datetime import datetime, timezone

# every collection in dataroom.db is bound at import time, so swap the client first
pymongo.MongoClient = mongomock.MongoClient

from fastapi.testclient import TestClient  # noqa: E402
from dataroom.main import app  # noqa: E402
from dataroom.db import db  # noqa: E402
from dataroom.db.indexes import ensure_indexes  # noqa: E402
from dataroom.models import DocumentRecord  # noqa: E402
from dataroom.storage import backend  # noqa: E402


@pytest.fixture(autouse=True)
def mock_db():
    # empty the in-memory Mongo between tests
    for name in db.list_collection_names():
        db[name].delete_many({})
    ensure_indexes()
    yield db


@pytest.fixture(autouse=True)
def object_store(monkeypatch):
    """In-memory stand-in for the blob/S3 container."""
    objects = {}

    def fake_put(key, data, content_type=None):
        objects[key] = data

    def fake_get(key):
        return objects[key]

    monkeypatch.setattr(backend, "put_object", fake_put)
    monkeypatch.setattr(backend, "get_object", fake_get)
    yield objects


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Signup + login to return an Authorization header"""
    client.post("/auth/signup", data={"username": "testuser", "password": "testpass", "email": "test@example.com"})
    res = client.post("/auth/token", data={"username": "testuser", "password": "testpass"})
    token = res.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_document():
    def _make(**overrides):
        data = {
            "id": "665f1c2e9b1e8a0001a1b2c3",
            "share_link": "abc123xyz0",
            "name": "report.pdf",
            "file_size": 2048,
            "file_type": "application/pdf",
            "file_path": "uploads/k2j4h5g6f7d_1700000000000.pdf",
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "owner": "testuser",
        }
        data.update(overrides)
        return DocumentRecord(**data)

    return _make


@pytest.fixture
def insert_document(mock_db, object_store):
    """Put a shared document straight into the stores, bypassing upload."""
    def _insert(share_link="tok1234567", content=b"%PDF-1.4 fake", **policy):
        path = f"uploads/{share_link}_1700000000000.pdf"
        object_store[path] = content
        doc = {
            "share_link": share_link,
            "name": "contract.pdf",
            "file_path": path,
            "file_size": len(content),
            "file_type": "application/pdf",
            "created_at": datetime.now(timezone.utc),
            "owner": "testuser",
            "password": None,
            "expires_at": None,
            "allow_download": True,
            "screenshot_protection": False,
            "email_verification": False,
            "allowed_email": None,
            "apply_watermark": False,
            "request_signature": False,
        }
        doc.update(policy)
        mock_db.documents.insert_one(doc)
        return doc

    return _insert


@pytest.fixture
def broken_activity_log(monkeypatch):
    """Activity collection whose writes always fail."""
    from pymongo.errors import PyMongoError
    from dataroom.utils import logger

    class _Unavailable:
        def insert_one(self, doc):
            raise PyMongoError("activity log unavailable")

    monkeypatch.setattr(logger, "activity_logs", _Unavailable())
