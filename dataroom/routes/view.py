# dataroom/routes/view.py
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from dataroom import settings
from dataroom.errors import AuthGateError, ExpiredError, NotFoundError, StorageError
from dataroom.gate import (
    ChangeEmail,
    CodeSent,
    CodeSubmitted,
    EmailGate,
    EmailSubmitted,
    Expired,
    GateEvent,
    GateState,
    NotFound,
    PasswordGate,
    PasswordSubmitted,
    Unlocked,
    dump_state,
    load_state,
    resume,
    transition,
)
from dataroom.models import DocumentRecord
from dataroom.services import documents
from dataroom.services.sharing import fetch_document_bytes
from dataroom.utils.logger import log_activity

logger = logging.getLogger(__name__)

# public: no session gate on this router
router = APIRouter(prefix="/view", tags=["view"])
templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)

SESSION_KEY = "gates"
# keeps the signed session cookie under browser size limits
MAX_REMEMBERED_LINKS = 20

_STATE_NAMES = {
    PasswordGate: "password",
    EmailGate: "email",
    CodeSent: "code_sent",
    Unlocked: "unlocked",
}


# ---------------------------
# session helpers
# ---------------------------
def _saved_state(request: Request, token: str) -> Optional[GateState]:
    return load_state(request.session.get(SESSION_KEY, {}).get(token))


def _remember(request: Request, token: str, state: GateState) -> None:
    gates = dict(request.session.get(SESSION_KEY, {}))
    gates.pop(token, None)
    data = dump_state(state)
    if data:
        gates[token] = data  # most recent last
    while len(gates) > MAX_REMEMBERED_LINKS:
        gates.pop(next(iter(gates)))
    request.session[SESSION_KEY] = gates


def _current(request: Request, token: str) -> tuple[Optional[DocumentRecord], GateState]:
    document = documents.find_by_token(token)
    state = resume(document, _saved_state(request, token))
    _remember(request, token, state)
    return document, state


# ---------------------------
# rendering
# ---------------------------
def _render(
    request: Request,
    token: str,
    document: Optional[DocumentRecord],
    state: GateState,
    *,
    error: Optional[str] = None,
    status_code: int = 200,
):
    if isinstance(state, (NotFound, Expired)):
        err = ExpiredError() if isinstance(state, Expired) else NotFoundError()
        return templates.TemplateResponse(
            request, "link_invalid.html", {"message": err.message}, status_code=err.status_code
        )

    return templates.TemplateResponse(
        request,
        "view.html",
        {
            "token": token,
            "document": document,
            "state": _STATE_NAMES[type(state)],
            "code_email": state.email if isinstance(state, CodeSent) else None,
            "error": error,
            "notice": request.session.pop("notice", None),
        },
        status_code=status_code,
    )


def _submit(request: Request, token: str, event: GateEvent, action: str):
    """Apply one form submission; re-render with 403 when the gate rejects it."""
    document, state = _current(request, token)
    if isinstance(state, (NotFound, Expired)):
        return _render(request, token, document, state)

    try:
        new_state = transition(state, event, document)
    except AuthGateError as e:
        log_activity("anonymous", f"{action}_rejected", {"share_link": token})
        return _render(request, token, document, state, error=e.message, status_code=e.status_code)

    _remember(request, token, new_state)
    if isinstance(new_state, CodeSent) and not isinstance(state, CodeSent):
        _deliver_code(request, token, new_state)
    if isinstance(new_state, Unlocked) and not isinstance(state, Unlocked):
        log_activity("anonymous", "document_unlocked", {"share_link": token})
    return RedirectResponse(f"/view/{token}", status_code=303)


def _deliver_code(request: Request, token: str, state: CodeSent) -> None:
    # stand-in for a real email: log it and show it to the visitor
    logger.info("verification code for %s on %s: %s", state.email, token, state.code)
    log_activity("anonymous", "verification_code_sent", {"share_link": token, "email": state.email})
    request.session["notice"] = f"(Mock) Verification code sent to {state.email}: {state.code}"


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode().replace("\\", "_").replace('"', "'") or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


# ---------------------------
# routes
# ---------------------------
@router.get("/{token}", response_class=HTMLResponse)
def view_document(token: str, request: Request):
    document, state = _current(request, token)
    return _render(request, token, document, state)


@router.post("/{token}/password")
def submit_password(token: str, request: Request, password: str = Form("")):
    return _submit(request, token, PasswordSubmitted(password), "password")


@router.post("/{token}/email")
def submit_email(token: str, request: Request, email: str = Form("")):
    return _submit(request, token, EmailSubmitted(email.strip()), "email")


@router.post("/{token}/code")
def submit_code(token: str, request: Request, code: str = Form("")):
    return _submit(request, token, CodeSubmitted(code.strip()), "code")


@router.post("/{token}/change-email")
def change_email(token: str, request: Request):
    return _submit(request, token, ChangeEmail(), "change_email")


@router.get("/{token}/download")
def download_document(token: str, request: Request):
    document, state = _current(request, token)
    if isinstance(state, (NotFound, Expired)):
        return _render(request, token, document, state)
    if not isinstance(state, Unlocked):
        return _render(request, token, document, state, error="This file is locked.", status_code=403)
    if not document.allow_download:
        return _render(request, token, document, state, error="Downloads are disabled for this file.", status_code=403)

    try:
        data = fetch_document_bytes(document)
    except StorageError as e:
        logger.warning("download failed for %s: %s", token, e.message)
        return _render(request, token, document, state, error="Failed to download file.", status_code=e.status_code)

    log_activity("anonymous", "download_document", {"share_link": token})
    return Response(
        content=data,
        media_type=document.file_type or "application/octet-stream",
        headers={"Content-Disposition": _content_disposition(document.name)},
    )
