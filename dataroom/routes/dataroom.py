# dataroom/routes/dataroom.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from dataroom import settings
from dataroom.auth import require_signed_in
from dataroom.errors import StorageError
from dataroom.gate import today_in
from dataroom.models import SharePolicy
from dataroom.services import documents
from dataroom.services.sharing import create_shared_document
from dataroom.utils.logger import log_activity
from dataroom.utils.tokens import share_url

router = APIRouter(tags=["dataroom"])
templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)

# Dashboard cards. Only the document count is real; views/viewers/time are
# fixed figures until view tracking exists.
PLACEHOLDER_STATS = [
    {"label": "Total Views", "value": "1,247", "trend": "24%", "up": True},
    {"label": "Unique Viewers", "value": "623", "trend": "18%", "up": True},
    {"label": "Avg. View Time", "value": "5m 42s", "trend": "5%", "up": False},
]


def _origin(request: Request) -> str:
    return settings.PUBLIC_ORIGIN or str(request.base_url)


def policy_form(
    password_protection: bool = Form(False),
    password: str = Form(""),
    link_expiration: bool = Form(False),
    expires_at: Optional[date] = Form(None),
    allow_downloads: bool = Form(True),
    screenshot_protection: bool = Form(False),
    email_verification: bool = Form(False),
    allowed_email: str = Form(""),
    apply_watermark: bool = Form(False),
    request_signature: bool = Form(False),
) -> SharePolicy:
    return SharePolicy(
        password_protection=password_protection,
        password=password,
        link_expiration=link_expiration,
        expires_at=expires_at,
        allow_downloads=allow_downloads,
        screenshot_protection=screenshot_protection,
        email_verification=email_verification,
        allowed_email=allowed_email.strip(),
        apply_watermark=apply_watermark,
        request_signature=request_signature,
    )


def _rows(request: Request, owner: str) -> list[dict]:
    origin = _origin(request)
    return [{"doc": d, "link": share_url(origin, d.share_link)} for d in documents.list_all(owner=owner)]


def _dashboard(request: Request, user: dict, *, uploaded=None, upload_error=None, status_code=200):
    rows = _rows(request, user["username"])
    return templates.TemplateResponse(
        request,
        "dataroom.html",
        {
            "user": user,
            "documents": rows,
            "doc_count": len(rows),
            "stats": PLACEHOLDER_STATS,
            "uploaded": uploaded,
            "upload_error": upload_error,
            "soft_limit_mb": settings.UPLOAD_SOFT_LIMIT_MB,
            "today": today_in().isoformat(),
        },
        status_code=status_code,
    )


# ---------------------------
# Authoring views
# ---------------------------
@router.get("/dataroom", response_class=HTMLResponse)
def dataroom_page(request: Request, current_user: dict = Depends(require_signed_in)):
    return _dashboard(request, current_user)


@router.post("/dataroom/upload", response_class=HTMLResponse)
async def dataroom_upload(
    request: Request,
    current_user: dict = Depends(require_signed_in),
    file: UploadFile = File(...),
    policy: SharePolicy = Depends(policy_form),
):
    content = await file.read()
    try:
        shared = create_shared_document(
            filename=file.filename,
            content=content,
            content_type=file.content_type,
            policy=policy,
            owner=current_user["username"],
            origin=_origin(request),
        )
    except StorageError as e:
        log_activity(current_user["username"], "upload_failed", {"filename": file.filename, "error": e.message})
        return _dashboard(request, current_user, upload_error=e.message, status_code=e.status_code)

    return _dashboard(request, current_user, uploaded={"doc": shared.document, "link": shared.share_url})


@router.get("/document-sharing", response_class=HTMLResponse)
def document_sharing_page(request: Request, current_user: dict = Depends(require_signed_in)):
    return templates.TemplateResponse(
        request,
        "document_sharing.html",
        {"user": current_user, "documents": _rows(request, current_user["username"])},
    )


# ---------------------------
# JSON API
# ---------------------------
@router.get("/api/documents")
def list_documents_api(request: Request, current_user: dict = Depends(require_signed_in)):
    return {
        "documents": [
            {**row["doc"].public_dict(), "share_url": row["link"]}
            for row in _rows(request, current_user["username"])
        ]
    }


@router.post("/api/documents", status_code=201)
async def upload_document_api(
    request: Request,
    current_user: dict = Depends(require_signed_in),
    file: UploadFile = File(...),
    policy: SharePolicy = Depends(policy_form),
):
    content = await file.read()
    shared = create_shared_document(
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        policy=policy,
        owner=current_user["username"],
        origin=_origin(request),
    )
    return {"document": shared.document.public_dict(), "share_url": shared.share_url}
