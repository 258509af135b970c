from datetime import date, datetime, timezone

import pytest
from pymongo.errors import PyMongoError

from dataroom.errors import NotFoundError, StorageError
from dataroom.models import SharePolicy
from dataroom.services import documents
from dataroom.services.sharing import create_shared_document, fetch_document_bytes
from dataroom.storage import backend


def _upload(policy=None, content=b"hello world", filename="notes.txt", now=None):
    return create_shared_document(
        filename=filename,
        content=content,
        content_type="text/plain",
        policy=policy or SharePolicy(),
        owner="testuser",
        origin="https://rooms.example.com",
        now=now,
    )


def test_upload_stores_bytes_and_record(mock_db, object_store):
    shared = _upload()
    doc = shared.document

    assert shared.share_url == f"https://rooms.example.com/view/{doc.share_link}"
    assert object_store[doc.file_path] == b"hello world"
    assert doc.file_path.startswith("uploads/") and doc.file_path.endswith(".txt")
    assert doc.name == "notes.txt"
    assert doc.file_size == 11
    assert doc.allow_download is True

    stored = mock_db.documents.find_one({"share_link": doc.share_link})
    assert stored["owner"] == "testuser"
    assert documents.query_by_token(doc.share_link).id == doc.id


def test_policy_values_only_kept_when_toggled_on():
    policy = SharePolicy(
        password_protection=False,
        password="typed-but-off",
        link_expiration=True,
        expires_at=date(2030, 1, 31),
        email_verification=False,
        allowed_email="someone@example.com",
        allow_downloads=False,
    )
    doc = _upload(policy).document
    assert doc.password is None
    assert doc.expires_at == date(2030, 1, 31)
    assert doc.allowed_email is None
    assert doc.allow_download is False


def test_failed_object_write_persists_nothing(mock_db, monkeypatch):
    def broken_put(key, data, content_type=None):
        raise RuntimeError("The specified container does not exist.")

    monkeypatch.setattr(backend, "put_object", broken_put)

    with pytest.raises(StorageError) as exc:
        _upload()
    assert exc.value.message == "The specified container does not exist."
    assert mock_db.documents.count_documents({}) == 0


def test_failed_insert_leaves_orphaned_object(object_store, monkeypatch):
    class BrokenCollection:
        def insert_one(self, doc):
            raise PyMongoError("write concern timeout")

    monkeypatch.setattr(documents, "documents_col", BrokenCollection())

    with pytest.raises(StorageError) as exc:
        _upload()
    assert "write concern timeout" in exc.value.message
    assert len(object_store) == 1


def test_unknown_token_raises_not_found():
    with pytest.raises(NotFoundError):
        documents.query_by_token("doesnotexist")
    assert documents.find_by_token("") is None


def test_list_all_newest_first():
    first = _upload(filename="a.txt", now=datetime(2024, 1, 1, tzinfo=timezone.utc)).document
    second = _upload(filename="b.txt", now=datetime(2024, 1, 2, tzinfo=timezone.utc)).document
    names = [d.name for d in documents.list_all(owner="testuser")]
    assert names[:2] == [second.name, first.name]
    assert documents.list_all(owner="someone-else") == []


def test_fetch_bytes_missing_object_is_storage_error(make_document):
    with pytest.raises(StorageError):
        fetch_document_bytes(make_document(file_path="uploads/gone.pdf"))
