# dataroom/auth.py
from datetime import datetime, timedelta, timezone
import uuid
from typing import Optional
from fastapi import HTTPException, status, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from bson import ObjectId
from bson.errors import InvalidId

from dataroom import settings
from dataroom.db import users, refresh_tokens, revoked_tokens

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# --- password utils (account passwords only; share-link passwords are plaintext) ---
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# --- user lookup -------------------------------------------------------------
def get_user_by_login(login: str) -> Optional[dict]:
    """Login can be either username or email."""
    login = (login or "").strip()
    return users.find_one({
        "$or": [
            {"username": login},
            {"email": login.lower()},
        ]
    })

def authenticate_user(login: str, password: str) -> Optional[dict]:
    user = get_user_by_login(login)
    # Google-only accounts have no password
    if not user or not user.get("password"):
        return None
    if not verify_password(password, user["password"]):
        return None
    return user


# --- JWT helpers -------------------------------------------------------------
def _now_utc() -> datetime:
    return datetime.now(timezone.utc)

def _create_jwt(sub: str, token_type: str, expires_delta: timedelta) -> str:
    iat = _now_utc()
    exp = iat + expires_delta
    payload = {
        "sub": sub,
        "type": token_type,
        "jti": str(uuid.uuid4()),
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALG)

def create_access_token(sub: str) -> str:
    return _create_jwt(sub, "access", timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MIN))

def create_refresh_token(sub: str) -> str:
    token = _create_jwt(sub, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    # persist jti for server-side control
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALG])
    refresh_tokens.insert_one({
        "jti": payload["jti"],
        "sub": payload["sub"],
        "exp": payload["exp"],
        "revoked": False,
        "created_at": _now_utc(),
    })
    return token

def decode_token(raw: str) -> dict:
    try:
        return jwt.decode(raw, settings.SECRET_KEY, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

def is_revoked(jti: str) -> bool:
    return revoked_tokens.find_one({"jti": jti}) is not None

def revoke_token(jti: str, sub: str, exp: int, reason: str = "logout") -> None:
    # upsert so double-logout is harmless
    revoked_tokens.update_one(
        {"jti": jti},
        {"$set": {"jti": jti, "sub": sub, "exp": exp, "reason": reason}},
        upsert=True,
    )


# --- session resolution -----------------------------------------------------
def _token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return request.cookies.get("token")

def _user_from_token(token: str) -> Optional[dict]:
    try:
        payload = decode_token(token)
    except HTTPException:
        return None
    if payload.get("type") != "access" or is_revoked(payload.get("jti", "")):
        return None
    try:
        user = users.find_one({"_id": ObjectId(payload.get("sub"))})
    except (InvalidId, TypeError):
        return None
    if not user:
        return None
    return {
        "_id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "role": user.get("role", "user"),
    }

def load_session(request: Request) -> Optional[dict]:
    """
    Evaluate the caller's session once per request and remember the result
    on request.state (also used as the audit actor).
    """
    if not getattr(request.state, "session_loaded", False):
        token = _token_from_request(request)
        request.state.user = _user_from_token(token) if token else None
        request.state.actor = request.state.user
        request.state.session_loaded = True
    return request.state.user

def is_session_loaded(request: Request) -> bool:
    return bool(getattr(request.state, "session_loaded", False))

def is_signed_in(request: Request) -> bool:
    return is_session_loaded(request) and request.state.user is not None


# --- dependencies used by routes ---------------------------------------------
def require_signed_in(request: Request) -> dict:
    """
    Gate for the authoring views. HTML callers get redirected to /sign-in
    by the app's 401 handler.
    """
    user = load_session(request)
    if not is_signed_in(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")
    return user
