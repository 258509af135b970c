import logging

from fastapi import FastAPI, Request
from fastapi.templating import Jinja2Templates
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from fastapi.exceptions import HTTPException

from dataroom import settings
from dataroom.auth import load_session
from dataroom.db.indexes import ensure_indexes
from dataroom.errors import DataRoomError
from dataroom.middleware.audit_middleware import AuditMiddleware
from dataroom.middleware.security_headers import SecurityHeadersMiddleware
from dataroom.routes import auth, dataroom, view
from dataroom.storage import ensure_buckets, storage_startup

logger = logging.getLogger(__name__)

app = FastAPI(title="Data Room", version="1.0.0")

templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    same_site="lax",
    https_only=settings.COOKIE_SECURE,
)

# Routers
app.include_router(auth.router)
app.include_router(dataroom.router)
app.include_router(view.router)


@app.on_event("startup")
async def _startup():
    ensure_indexes()

    # object storage: client + container/bucket
    try:
        storage_startup()
        ensure_buckets()
    except Exception as e:
        logger.warning("storage init skipped: %s", e)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code == 401 and _wants_html(request):
        return RedirectResponse("/sign-in", status_code=303)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(DataRoomError)
async def dataroom_error_handler(request: Request, exc: DataRoomError):
    if _wants_html(request):
        return templates.TemplateResponse(
            request, "link_invalid.html", {"message": exc.message}, status_code=exc.status_code
        )
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
def root(request: Request):
    return templates.TemplateResponse(request, "landing.html", {"user": load_session(request)})


@app.get("/health")
def health():
    return {"status": "ok"}
