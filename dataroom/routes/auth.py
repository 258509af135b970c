# dataroom/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.templating import Jinja2Templates
from authlib.integrations.starlette_client import OAuth
from datetime import datetime, timezone
from pymongo.errors import DuplicateKeyError

from dataroom import settings
from dataroom.db import users
from dataroom.auth import (
    authenticate_user,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
    revoke_token,
    require_signed_in,
)
from dataroom.utils.logger import log_activity

router = APIRouter(tags=["auth"])
templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)

# --- OAuth Setup (Google, optional) ---
oauth = OAuth()
if settings.GOOGLE_CLIENT_ID:
    oauth.register(
        name="google",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )


def _create_user(username: str, email: str, password: str) -> dict:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not password:
        raise HTTPException(status_code=400, detail="Username and password are required")
    if users.find_one({"username": username}):
        raise HTTPException(status_code=409, detail="Username already exists")
    if email and users.find_one({"email": email}):
        raise HTTPException(status_code=409, detail="Email already registered")

    doc = {
        "username": username,
        "email": email or None,
        "password": get_password_hash(password),
        "role": "user",
        "created_at": datetime.now(timezone.utc),
    }
    try:
        users.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Username already exists")

    log_activity(user_id=username, action="signup", metadata={"email": email})
    return doc


def _free_username(base: str) -> str:
    """First of base, base2, base3, ... not taken by another account."""
    name, n = base, 1
    while users.find_one({"username": name}):
        n += 1
        name = f"{base}{n}"
    return name


def _issue_tokens(user: dict) -> tuple[str, str]:
    sub = str(user["_id"])  # must be string for JWT
    return create_access_token(sub), create_refresh_token(sub)


def _set_session_cookies(resp, access_token: str, refresh_token: str):
    resp.set_cookie(key="token", value=access_token, httponly=True, secure=settings.COOKIE_SECURE, samesite="lax")
    resp.set_cookie(
        key=settings.REFRESH_TOKEN_COOKIE,
        value=refresh_token,
        httponly=True,  # keep refresh token server-only
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    return resp


# ---------- Sign up ----------
@router.get("/sign-up", response_class=HTMLResponse)
def sign_up_page(request: Request):
    return templates.TemplateResponse(request, "sign_up.html", {"error": None})


@router.post("/sign-up")
def sign_up(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    email: str = Form(""),
):
    try:
        _create_user(username, email, password)
    except HTTPException as e:
        return templates.TemplateResponse(request, "sign_up.html", {"error": e.detail}, status_code=e.status_code)
    return RedirectResponse("/sign-in?msg=Account created. Please sign in.", status_code=303)


@router.post("/auth/signup", status_code=201)
def signup_api(username: str = Form(...), password: str = Form(...), email: str = Form("")):
    _create_user(username, email, password)
    return {"message": "User created"}


# ---------- Sign in ----------
@router.get("/sign-in", response_class=HTMLResponse)
def sign_in_page(request: Request):
    return templates.TemplateResponse(
        request,
        "sign_in.html",
        {"error": None, "msg": request.query_params.get("msg"), "google_enabled": bool(settings.GOOGLE_CLIENT_ID)},
    )


@router.post("/sign-in")
def sign_in(request: Request, login: str = Form(...), password: str = Form(...)):
    user = authenticate_user(login, password)
    if not user:
        return templates.TemplateResponse(
            request,
            "sign_in.html",
            {"error": "Invalid credentials", "msg": None, "google_enabled": bool(settings.GOOGLE_CLIENT_ID)},
            status_code=401,
        )

    log_activity(user_id=user["username"], action="login_password", metadata={})
    return _set_session_cookies(RedirectResponse("/dataroom", status_code=303), *_issue_tokens(user))


@router.post("/auth/token")
def login(form_data: OAuth2PasswordRequestForm = Depends()):
    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    log_activity(user_id=user["username"], action="login_password", metadata={"via": "api"})
    access_token, refresh_token = _issue_tokens(user)

    # tokens in JSON for API clients, and as cookies for the browser
    resp = JSONResponse({
        "access_token": access_token,
        "token_type": "bearer",
        "refresh_token": refresh_token,
    })
    return _set_session_cookies(resp, access_token, refresh_token)


@router.get("/auth/me")
def me(current_user: dict = Depends(require_signed_in)):
    return {"username": current_user["username"], "email": current_user.get("email"), "role": current_user["role"]}


# ---------- Google Login ----------
@router.get("/auth/google/login")
async def login_via_google(request: Request):
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    redirect_uri = request.url_for("auth_via_google_callback")
    return await oauth.google.authorize_redirect(request, redirect_uri)


@router.get("/auth/google/callback")
async def auth_via_google_callback(request: Request):
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    token = await oauth.google.authorize_access_token(request)
    user_info = token.get("userinfo")
    if not user_info:
        raise HTTPException(status_code=400, detail="Failed to retrieve Google user info")

    email = user_info["email"].lower()
    user = users.find_one({"email": email})
    if not user:
        user = {
            "username": _free_username(user_info.get("name") or email.split("@")[0]),
            "email": email,
            "provider": "google",
            "role": "user",
            "created_at": datetime.now(timezone.utc),
        }
        try:
            users.insert_one(user)
        except DuplicateKeyError:
            # name claimed between the lookup and the insert
            user.pop("_id", None)
            user["username"] = _free_username(user["username"])
            users.insert_one(user)

    log_activity(user_id=user["username"], action="login_google", metadata={"email": email})
    return _set_session_cookies(RedirectResponse(url="/dataroom", status_code=303), *_issue_tokens(user))


# ---------- Logout ----------
@router.post("/auth/logout")
def logout(request: Request):
    rt = request.cookies.get(settings.REFRESH_TOKEN_COOKIE)
    if rt:
        try:
            p = decode_token(rt)
            revoke_token(p["jti"], p["sub"], p["exp"], reason="logout")
        except HTTPException:
            pass

    if "text/html" in request.headers.get("accept", ""):
        response = RedirectResponse("/", status_code=303)
    else:
        response = JSONResponse({"message": "Logged Out"})
    response.delete_cookie("token")
    response.delete_cookie(settings.REFRESH_TOKEN_COOKIE)
    return response
