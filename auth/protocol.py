"""
auth/protocol.py -- The connect / login / logout flows.

AuthProtocol owns no state of its own beyond its collaborators: a user
directory, a session store and a challenge store, all injected at
construction. Each entry point returns a Reply -- the typed outcome plus the
status and transport instructions (cookies to set or clear, headers to add).
The HTTP layer applies a Reply to a response object; nothing here knows
about FastAPI.

Error policy:
  Domain failures are returned as AuthError values, never raised. Store
  misses are mapped to the nearest domain error here. Every rejection emits
  an audit line on "sessiongate.auth.audit" when audit_verbosity >= 1. Audit
  lines carry the login or identifier, never the password hash, the reply
  or the token.

Status codes:
  connect: 200 AuthNeeded / AuthOk, 440 Session_expired
  login:   200 AuthOk, 401 on every failure
  logout:  200 AuthNeeded, 401 Invalid_session

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from auth.challenges import ChallengeStore
from auth.directory import UserDirectory
from auth.errors import ForeignAuthError
from auth.hashing import Hasher
from auth.models import (
    AuthError,
    AuthErrorKind,
    AuthNeeded,
    AuthOk,
    AuthOutcome,
    AuthResult,
    CookieToken,
    CsrfToken,
    ForeignLogin,
    ForeignRequirement,
    InboundRequest,
    LocalLogin,
    LocalRequirement,
    LoginRequest,
    SecurityScheme,
    TokenKind,
)
from auth.resolver import get_request_session
from auth.sessions import SessionStore

logger = logging.getLogger("sessiongate.auth")
audit_logger = logging.getLogger("sessiongate.auth.audit")

SESSION_EXPIRED_STATUS = 440


@dataclass
class Reply:
    """Outcome of one auth request plus the transport side effects to apply."""

    result: AuthOutcome
    status: int = 200
    cookies: dict[str, str] = field(default_factory=dict)
    cleared_cookies: list[str] = field(default_factory=list)
    headers: list[tuple[str, str]] = field(default_factory=list)


class AuthProtocol:
    def __init__(
        self,
        directory: UserDirectory,
        sessions: SessionStore[Any],
        challenges: ChallengeStore,
        token_kind: TokenKind,
        hasher: Optional[Hasher] = None,
        audit_verbosity: int = 0,
    ) -> None:
        self.directory = directory
        self.sessions = sessions
        self.challenges = challenges
        self.token_kind = token_kind
        self.hasher = hasher or Hasher()
        self.audit_verbosity = audit_verbosity

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _audit(self, level: int, msg: str, *args: Any) -> None:
        if self.audit_verbosity >= level:
            audit_logger.debug(msg, *args)

    def _reply(
        self, result: AuthOutcome, status: int = 200, token: Optional[str] = None, clear: bool = False
    ) -> Reply:
        """Build a Reply with the auth header for the configured token kind.

        Cookie transport sets the cookie only when there is a token; clear
        asks the client to drop it. CSRF transport always advertises the
        header name and never carries the token itself.
        """
        reply = Reply(result=result, status=status)
        if isinstance(self.token_kind, CookieToken):
            if token is not None:
                reply.cookies[self.token_kind.name] = token
            elif clear:
                reply.cleared_cookies.append(self.token_kind.name)
        elif isinstance(self.token_kind, CsrfToken):
            reply.headers.append(("access-control-allow-headers", self.token_kind.header))
        return reply

    def _request_auth(self, clear: bool = False) -> Reply:
        return self._reply(AuthNeeded(self.challenges.issue()), clear=clear)

    def _error(self, kind: AuthErrorKind, status: int, challenge_id: Optional[str] = None) -> Reply:
        return self._reply(AuthError(kind, challenge_id), status=status)

    def _auth_ok(
        self,
        login: str,
        user_id: Any,
        user_info: Any,
        token: str,
        foreign_info: Any = None,
    ) -> Reply:
        auth = AuthResult(
            login=login,
            user_id=user_id,
            token=token,
            user_info=user_info,
            foreign_info=foreign_info,
        )
        return self._reply(AuthOk(auth), token=token)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def connect(self, scheme: SecurityScheme, request: InboundRequest) -> Reply:
        """Resume an existing session or hand out a challenge.

        The existing token is returned as-is; connect never rotates tokens.
        """
        session = await get_request_session(scheme, request, self.sessions)
        if session is None:
            return self._request_auth()
        found = await self.directory.find_user(session.login)
        if found is None:
            self._audit(1, "/connect: session user %r no longer exists", session.login)
            return self._error(AuthErrorKind.session_expired, SESSION_EXPIRED_STATUS)
        required, user_id, user_info = found
        foreign_info = required.provider if isinstance(required, ForeignRequirement) else None
        return self._auth_ok(session.login, user_id, user_info, session.token, foreign_info)

    async def login(self, body: LoginRequest) -> Reply:
        if isinstance(body, LocalLogin):
            return await self._login_local(body)
        if isinstance(body, ForeignLogin):
            return await self._login_foreign(body)
        raise TypeError(f"Unknown login request: {body!r}")

    async def _login_local(self, body: LocalLogin) -> Reply:
        found = await self.directory.find_user(body.login)
        if found is None or not isinstance(found[0], LocalRequirement):
            self._audit(1, "/login: could not find user %r", body.login)
            return self._error(AuthErrorKind.bad_user_or_password, 401)
        required, user_id, user_info = found

        challenge = self.challenges.get(body.challenge_id)
        if challenge is None:
            self._audit(1, "/login: could not find challenge %r", body.challenge_id)
            return self._error(AuthErrorKind.challenge_not_found_or_expired, 401, body.challenge_id)

        if not self.hasher.verify_reply(challenge.challenge, required.password_hash, body.reply):
            # The challenge stays valid for another attempt.
            self._audit(1, "/login: challenge failed for %r", body.login)
            return self._error(AuthErrorKind.bad_user_or_password, 401)

        self.challenges.consume(body.challenge_id)
        session = await self.sessions.create_session(body.login, user_id)
        logger.info("Local login for %s", body.login)
        return self._auth_ok(body.login, user_id, user_info, session.token)

    async def _login_foreign(self, body: ForeignLogin) -> Reply:
        try:
            foreign_login = await self.directory.check_foreign(body.origin, body.token)
        except ForeignAuthError as e:
            self._audit(1, "/login: foreign check failed for origin %r (%d %s)", body.origin, e.code, e.message)
            return self._error(AuthErrorKind.invalid_session, 401)

        found = await self.directory.find_user(foreign_login)
        if (
            found is None
            or not isinstance(found[0], ForeignRequirement)
            or found[0].provider != body.origin
        ):
            self._audit(1, "/login: could not find foreign user %r", foreign_login)
            return self._error(AuthErrorKind.bad_user_or_password, 401)
        required, user_id, user_info = found

        await self.sessions.add_session(body.token, user_id)
        logger.info("Foreign login for %s via %s", foreign_login, body.origin)
        return self._auth_ok(foreign_login, user_id, user_info, body.token, required.provider)

    async def logout(self, scheme: SecurityScheme, request: InboundRequest) -> Reply:
        session = await get_request_session(scheme, request, self.sessions)
        if session is None:
            self._audit(1, "/logout: no valid session")
            return self._error(AuthErrorKind.invalid_session, 401)
        await self.sessions.remove_session(session.user_id, session.token)
        logger.info("Logout for %s", session.login or session.user_id)
        return self._request_auth(clear=True)
