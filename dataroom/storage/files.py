# dataroom/storage/files.py
from __future__ import annotations

from typing import Optional

from dataroom.errors import StorageError
from dataroom.storage import backend


def save_upload(storage_key: str, data: bytes, content_type: Optional[str] = None) -> str:
    """
    Store file in the configured backend and return the storage_key.
    Any client/SDK failure is re-raised as StorageError with its message intact.
    """
    try:
        backend.put_object(storage_key, data, content_type=content_type)
    except Exception as e:
        raise StorageError(str(e)) from e
    return storage_key


def load_upload(storage_key: str) -> bytes:
    try:
        return backend.get_object(storage_key)
    except Exception as e:
        raise StorageError(str(e)) from e
