"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and the protocol do the work.

The Local/Foreign variants are small frozen dataclasses joined by a Union
alias. Callers branch with isinstance() over the closed set of variants.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

UserId = TypeVar("UserId")
UserInfo = TypeVar("UserInfo")
ForeignInfo = TypeVar("ForeignInfo")


@dataclass
class Session(Generic[UserId]):
    """A live session. Valid for exactly as long as the SessionStore holds it.

    login is empty for sessions attached through federated login, where the
    token is the provider-issued credential rather than a server-minted one.
    last_access is refreshed on every successful lookup.
    """

    login: str
    user_id: UserId
    token: str
    last_access: float
    variables: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Challenge:
    """An outstanding login challenge. issued_at is wall-clock seconds."""

    challenge_id: str
    challenge: str
    issued_at: float = 0.0


# ---------------------------------------------------------------------------
# Identity requirements -- what a login must present
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalRequirement:
    password_hash: str


@dataclass(frozen=True)
class ForeignRequirement:
    provider: str


AuthRequirement = Union[LocalRequirement, ForeignRequirement]


# ---------------------------------------------------------------------------
# Login requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalLogin:
    login: str
    challenge_id: str
    reply: str


@dataclass(frozen=True)
class ForeignLogin:
    origin: str
    token: str


LoginRequest = Union[LocalLogin, ForeignLogin]


# ---------------------------------------------------------------------------
# Token sources and transport kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuerySource:
    name: str


@dataclass(frozen=True)
class CookieSource:
    name: str


@dataclass(frozen=True)
class HeaderSource:
    name: str


TokenSource = Union[QuerySource, CookieSource, HeaderSource]
SecurityScheme = list[TokenSource]


@dataclass(frozen=True)
class CookieToken:
    name: str


@dataclass(frozen=True)
class CsrfToken:
    header: str


TokenKind = Union[CookieToken, CsrfToken]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class AuthResult(Generic[UserId, UserInfo, ForeignInfo]):
    """Successful authentication payload.

    token is always the session's cookie/CSRF value. Repeated connect calls
    return the same token until logout.
    """

    login: str
    user_id: UserId
    token: str
    user_info: UserInfo
    foreign_info: Optional[ForeignInfo] = None


class AuthErrorKind(str, Enum):
    session_expired = "Session_expired"
    bad_user_or_password = "Bad_user_or_password"  # noqa: S105 -- error code, not a password
    invalid_session = "Invalid_session"
    challenge_not_found_or_expired = "Challenge_not_found_or_expired"
    # Reserved: no default component produces it.
    too_many_login_attempts = "Too_many_login_attempts"


@dataclass(frozen=True)
class AuthNeeded:
    challenge: Challenge


@dataclass(frozen=True)
class AuthOk:
    auth: AuthResult[Any, Any, Any]


@dataclass(frozen=True)
class AuthError:
    kind: AuthErrorKind
    challenge_id: Optional[str] = None  # set for challenge_not_found_or_expired


AuthOutcome = Union[AuthNeeded, AuthOk, AuthError]


@dataclass
class InboundRequest:
    """Transport-neutral view of an incoming request.

    headers keys are lower-cased; values keep every occurrence of a repeated
    header in arrival order.
    """

    query: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    headers: dict[str, list[str]] = field(default_factory=dict)
