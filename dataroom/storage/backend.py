# dataroom/storage/backend.py
from __future__ import annotations

import io
from typing import Optional

from dataroom import settings

BACKEND = settings.STORAGE_BACKEND

blob_service = None
ContentSettings = None
s3 = None


def storage_startup() -> None:
    """
    Initialize the object store client (Azure Blob or S3/MinIO).
    IMPORTANT: call this from FastAPI startup event.
    """
    global blob_service, ContentSettings, s3

    if BACKEND == "azure":
        from azure.storage.blob import BlobServiceClient, ContentSettings as _ContentSettings

        if not settings.AZURE_BLOB_CONN_STR:
            raise RuntimeError("AZURE_BLOB_CONN_STR not set")

        ContentSettings = _ContentSettings
        blob_service = BlobServiceClient.from_connection_string(settings.AZURE_BLOB_CONN_STR)

    elif BACKEND == "s3":
        from minio import Minio

        # Minio wants host:port (no scheme)
        endpoint = settings.S3_ENDPOINT.replace("http://", "").replace("https://", "").strip("/")

        s3 = Minio(
            endpoint=endpoint,
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
            secure=settings.S3_ENDPOINT.startswith("https"),
        )
    else:
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {BACKEND}")


# -------------------------
# Azure helpers
# -------------------------
def _azure_put(container: str, key: str, data: bytes, content_type: Optional[str] = None):
    if blob_service is None:
        raise RuntimeError("Azure blob_service not initialized (call storage_startup)")

    bc = blob_service.get_blob_client(container=container, blob=key)

    kwargs = {}
    if content_type and ContentSettings is not None:
        kwargs["content_settings"] = ContentSettings(content_type=content_type)

    # uploads never overwrite: each path is freshly generated
    bc.upload_blob(data, overwrite=False, **kwargs)


def _azure_get(container: str, key: str) -> bytes:
    if blob_service is None:
        raise RuntimeError("Azure blob_service not initialized (call storage_startup)")

    bc = blob_service.get_blob_client(container=container, blob=key)
    return bc.download_blob().readall()


# -------------------------
# S3 helpers
# -------------------------
def _s3_put(bucket: str, key: str, data: bytes, content_type: Optional[str] = None):
    """
    MinIO put_object requires a file-like object with .read()
    """
    if s3 is None:
        raise RuntimeError("S3 client not initialized (call storage_startup)")

    s3.put_object(
        bucket_name=bucket,
        object_name=key,
        data=io.BytesIO(data),
        length=len(data),
        content_type=content_type or "application/octet-stream",
    )


def _s3_get(bucket: str, key: str) -> bytes:
    if s3 is None:
        raise RuntimeError("S3 client not initialized (call storage_startup)")

    resp = s3.get_object(bucket, key)
    try:
        return resp.read()
    finally:
        resp.close()
        resp.release_conn()


def ensure_buckets():
    """
    Create the documents container/bucket.
    Call this on application startup (not on import).
    """
    if BACKEND == "s3":
        if not s3.bucket_exists(settings.S3_BUCKET_DOCUMENTS):
            s3.make_bucket(settings.S3_BUCKET_DOCUMENTS)
    else:
        if blob_service is None:
            raise RuntimeError("Azure blob_service not initialized (call storage_startup)")

        from azure.core.exceptions import ResourceExistsError

        try:
            blob_service.create_container(settings.AZURE_CONTAINER_DOCUMENTS)
        except ResourceExistsError:
            pass


# -------------------------
# Public API (used by app)
# -------------------------
def put_object(key: str, data: bytes, content_type: Optional[str] = None):
    if BACKEND == "s3":
        return _s3_put(settings.S3_BUCKET_DOCUMENTS, key, data, content_type)
    return _azure_put(settings.AZURE_CONTAINER_DOCUMENTS, key, data, content_type)


def get_object(key: str) -> bytes:
    if BACKEND == "s3":
        return _s3_get(settings.S3_BUCKET_DOCUMENTS, key)
    return _azure_get(settings.AZURE_CONTAINER_DOCUMENTS, key)
