# dataroom/services/sharing.py
"""
Upload & link generation, and the download half of content delivery.

The object write and the metadata insert are two independent calls. The
insert only runs after the object write succeeded; if the insert then fails
the stored object is left behind without a record.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from dataroom.errors import StorageError
from dataroom.models import DocumentRecord, SharePolicy
from dataroom.services import documents
from dataroom.storage import load_upload, save_upload
from dataroom.utils.logger import log_activity
from dataroom.utils.tokens import share_token, share_url, storage_path

logger = logging.getLogger(__name__)


class SharedDocument(NamedTuple):
    document: DocumentRecord
    share_url: str


def _utcnow():
    return datetime.now(timezone.utc)


def create_shared_document(
    *,
    filename: str,
    content: bytes,
    content_type: Optional[str],
    policy: SharePolicy,
    owner: Optional[str],
    origin: str,
    now: Optional[datetime] = None,
) -> SharedDocument:
    now = now or _utcnow()
    name = os.path.basename(filename or "")

    # 1) + 2) store the bytes under a fresh path
    path = storage_path(name, now)
    save_upload(path, content, content_type=content_type)

    # 3) + 4) share token and the record, policy captured as of now
    token = share_token()
    record = {
        "name": name,
        "file_path": path,
        "file_size": len(content),
        "file_type": content_type or "",
        "share_link": token,
        "created_at": now,
        "owner": owner,
        **policy.captured(),
    }
    try:
        document = documents.insert(record)
    except StorageError:
        logger.warning("orphaned object %s: metadata insert failed", path)
        raise

    log_activity(owner or "anonymous", "upload_document", {"name": name, "share_link": token, "size": len(content)})

    # 5) link to hand out
    return SharedDocument(document, share_url(origin, token))


def fetch_document_bytes(document: DocumentRecord) -> bytes:
    """Raw bytes for an unlocked download; StorageError is left to the caller."""
    return load_upload(document.file_path)
