# dataroom/services/documents.py
from __future__ import annotations

from typing import List, Optional

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from dataroom.db import documents as documents_col
from dataroom.errors import NotFoundError, StorageError
from dataroom.models import DocumentRecord


def insert(record: dict) -> DocumentRecord:
    """Persist a new document record and return it with its id."""
    doc = dict(record)
    try:
        result = documents_col.insert_one(doc)
    except PyMongoError as e:
        raise StorageError(str(e)) from e
    doc["_id"] = result.inserted_id
    return DocumentRecord.from_mongo(doc)


def query_by_token(token: str) -> DocumentRecord:
    if not token:
        raise NotFoundError()
    try:
        doc = documents_col.find_one({"share_link": token})
    except PyMongoError as e:
        raise StorageError(str(e)) from e
    if not doc:
        raise NotFoundError()
    return DocumentRecord.from_mongo(doc)


def find_by_token(token: str) -> Optional[DocumentRecord]:
    try:
        return query_by_token(token)
    except NotFoundError:
        return None


def list_all(owner: Optional[str] = None) -> List[DocumentRecord]:
    """Records newest first; `owner` narrows to one uploader."""
    q = {"owner": owner} if owner else {}
    try:
        cursor = documents_col.find(q).sort("created_at", DESCENDING)
        return [DocumentRecord.from_mongo(d) for d in cursor]
    except PyMongoError as e:
        raise StorageError(str(e)) from e
