# dataroom/storage/__init__.py
from dataroom.storage.backend import storage_startup, ensure_buckets
from dataroom.storage.files import save_upload, load_upload

__all__ = ["storage_startup", "ensure_buckets", "save_upload", "load_upload"]
