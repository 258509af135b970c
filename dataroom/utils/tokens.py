# dataroom/utils/tokens.py
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

_BASE36 = string.digits + string.ascii_lowercase

SHARE_TOKEN_LENGTH = 10
STORAGE_TOKEN_LENGTH = 11
UPLOAD_PREFIX = "uploads"


def random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def file_extension(filename: str) -> str:
    """
    Last dot-separated segment of the name; the whole name when it has no dot.
    """
    return (filename or "").rsplit(".", 1)[-1]


def storage_path(filename: str, now: Optional[datetime] = None) -> str:
    """uploads/<random>_<epoch millis>.<ext>. No collision check."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{UPLOAD_PREFIX}/{random_base36(STORAGE_TOKEN_LENGTH)}_{millis}.{file_extension(filename)}"


def share_token() -> str:
    # uniqueness is only probabilistic; the unique index on share_link catches the rest
    return random_base36(SHARE_TOKEN_LENGTH)


def verification_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def share_url(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/view/{token}"
