# dataroom/gate.py
"""
Access gate for a shared link.

The gate is a small state machine. States are frozen dataclasses, events are
frozen dataclasses, and `transition()` maps (state, event) to the next state
for a given document without touching the web layer, the session or storage.

    Loading -> NotFound | Expired | PasswordGate | EmailGate | Unlocked
    PasswordGate -> EmailGate | Unlocked
    EmailGate -> CodeSent -> Unlocked
    CodeSent -(change email)-> EmailGate

NotFound, Expired and Unlocked are terminal. A rejected submission raises
AuthGateError and the caller keeps the state it already had.

The verification code lives in the CodeSent state itself and is never sent
anywhere, so this gate is a deterrent, not a security boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

from dataroom import settings
from dataroom.errors import AuthGateError
from dataroom.models import DocumentRecord
from dataroom.utils.tokens import verification_code


# ---------------------------
# States
# ---------------------------
@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Expired:
    pass


@dataclass(frozen=True)
class PasswordGate:
    pass


@dataclass(frozen=True)
class EmailGate:
    pass


@dataclass(frozen=True)
class CodeSent:
    email: str
    code: str


@dataclass(frozen=True)
class Unlocked:
    pass


GateState = Union[Loading, NotFound, Expired, PasswordGate, EmailGate, CodeSent, Unlocked]

TERMINAL = (NotFound, Expired, Unlocked)


# ---------------------------
# Events
# ---------------------------
@dataclass(frozen=True)
class Resolved:
    document: Optional[DocumentRecord]


@dataclass(frozen=True)
class PasswordSubmitted:
    password: str


@dataclass(frozen=True)
class EmailSubmitted:
    email: str


@dataclass(frozen=True)
class CodeSubmitted:
    code: str


@dataclass(frozen=True)
class ChangeEmail:
    pass


GateEvent = Union[Resolved, PasswordSubmitted, EmailSubmitted, CodeSubmitted, ChangeEmail]


# ---------------------------
# Helpers
# ---------------------------
def today_in(tz_name: Optional[str] = None) -> date:
    return datetime.now(ZoneInfo(tz_name or settings.GATE_TIMEZONE)).date()


def is_expired(expires_at: Optional[date], today: date) -> bool:
    """A link stays valid through the whole of its expiration day."""
    return expires_at is not None and today > expires_at


def is_terminal(state: GateState) -> bool:
    return isinstance(state, TERMINAL)


def _after_password(document: DocumentRecord) -> GateState:
    return EmailGate() if document.email_verification else Unlocked()


def _on_resolved(document: Optional[DocumentRecord], today: date) -> GateState:
    if document is None:
        return NotFound()
    if is_expired(document.expires_at, today):
        return Expired()
    if document.has_password:
        return PasswordGate()
    return _after_password(document)


# ---------------------------
# Transition function
# ---------------------------
def transition(
    state: GateState,
    event: GateEvent,
    document: Optional[DocumentRecord] = None,
    *,
    today: Optional[date] = None,
    code_factory: Callable[[], str] = verification_code,
) -> GateState:
    """
    Next gate state for `event`. `document` is the record the link resolved
    to (Resolved carries its own). Events the current state does not accept
    leave it unchanged.
    """
    if isinstance(state, Loading):
        if isinstance(event, Resolved):
            return _on_resolved(event.document, today or today_in())
        return state

    if is_terminal(state) or document is None:
        return state

    if isinstance(state, PasswordGate) and isinstance(event, PasswordSubmitted):
        if document.password and event.password == document.password:
            return _after_password(document)
        raise AuthGateError("Incorrect password")

    if isinstance(state, EmailGate) and isinstance(event, EmailSubmitted):
        if not event.email:
            raise AuthGateError("Email is required")
        if document.allowed_email and event.email != document.allowed_email:
            raise AuthGateError("Access denied. This document is not shared with this email address.")
        return CodeSent(email=event.email, code=code_factory())

    if isinstance(state, CodeSent):
        if isinstance(event, CodeSubmitted):
            if event.code == state.code:
                return Unlocked()
            raise AuthGateError("Invalid code")
        if isinstance(event, ChangeEmail):
            return EmailGate()

    return state


def resume(
    document: Optional[DocumentRecord],
    saved: Optional[GateState],
    today: Optional[date] = None,
) -> GateState:
    """
    State for a request on a link, given what the visitor had reached before.
    Missing and expired documents win over any saved progress.
    """
    today = today or today_in()
    resolved = transition(Loading(), Resolved(document), today=today)
    if isinstance(resolved, (NotFound, Expired)):
        return resolved
    if saved is None or isinstance(saved, (Loading, NotFound, Expired)):
        return resolved
    return saved


# ---------------------------
# Session (de)serialization
# ---------------------------
_TAGS = {
    PasswordGate: "password",
    EmailGate: "email",
    CodeSent: "code_sent",
    Unlocked: "unlocked",
}


def dump_state(state: GateState) -> Optional[dict]:
    """Session payload for a state; None for states not worth remembering."""
    tag = _TAGS.get(type(state))
    if tag is None:
        return None
    data = {"tag": tag}
    if isinstance(state, CodeSent):
        data.update(email=state.email, code=state.code)
    return data


def load_state(data: Optional[dict]) -> Optional[GateState]:
    if not data:
        return None
    tag = data.get("tag")
    if tag == "password":
        return PasswordGate()
    if tag == "email":
        return EmailGate()
    if tag == "code_sent" and data.get("email") and data.get("code"):
        return CodeSent(email=data["email"], code=data["code"])
    if tag == "unlocked":
        return Unlocked()
    return None
