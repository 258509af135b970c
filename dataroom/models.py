# dataroom/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class SharePolicy(BaseModel):
    """
    Access-control options chosen on the upload form.

    Toggles and their values arrive separately (a password typed in while
    the toggle is off is dropped); `captured()` applies that rule.
    """
    password_protection: bool = False
    password: str = ""
    link_expiration: bool = False
    expires_at: Optional[date] = None
    allow_downloads: bool = True
    screenshot_protection: bool = False
    email_verification: bool = False
    allowed_email: str = ""
    apply_watermark: bool = False
    request_signature: bool = False

    def captured(self) -> dict:
        """Policy fields as they are stored on the document record."""
        return {
            "password": self.password if self.password_protection else None,
            "expires_at": self.expires_at.isoformat() if self.link_expiration and self.expires_at else None,
            "allow_download": self.allow_downloads,
            "screenshot_protection": self.screenshot_protection,
            "email_verification": self.email_verification,
            "allowed_email": self.allowed_email if self.email_verification and self.allowed_email else None,
            "apply_watermark": self.apply_watermark,
            "request_signature": self.request_signature,
        }


class DocumentRecord(BaseModel):
    id: str
    share_link: str
    name: str
    file_size: int = Field(ge=0)
    file_type: str = ""
    file_path: str
    created_at: datetime
    owner: Optional[str] = None

    password: Optional[str] = None
    expires_at: Optional[date] = None
    allow_download: bool = True
    screenshot_protection: bool = False
    email_verification: bool = False
    allowed_email: Optional[str] = None
    apply_watermark: bool = False
    request_signature: bool = False

    @classmethod
    def from_mongo(cls, doc: dict) -> "DocumentRecord":
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["id"] = str(doc["_id"])
        # empty strings from older rows mean "not set"
        for key in ("password", "expires_at", "allowed_email"):
            if data.get(key) == "":
                data[key] = None
        return cls(**data)

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    @property
    def shows_watermark(self) -> bool:
        return self.screenshot_protection or self.apply_watermark

    @property
    def size_kb(self) -> str:
        return f"{self.file_size / 1024:.2f} KB"

    @property
    def size_mb(self) -> str:
        return f"{self.file_size / 1024 / 1024:.2f} MB"

    @property
    def type_label(self) -> str:
        parts = (self.file_type or "").split("/")
        return parts[1].upper() if len(parts) > 1 and parts[1] else "FILE"

    def public_dict(self) -> dict:
        """JSON shape for the authoring API (the owner may see their own settings)."""
        return self.model_dump(mode="json")
