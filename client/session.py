"""
client/session.py -- Python client for the SessionGate endpoints.

The client performs the challenge-response dance so callers only supply a
login and password:
  1. GET /connect            -> a challenge (or an existing session)
  2. pwhash = H(login, password); reply = H(challenge, pwhash)
  3. POST /login {"local": {login, challenge_id, reply}}
The password itself never leaves the process.

Token transport mirrors the server's deployment mode:
  cookie -- the HTTP session's cookie jar carries the token automatically.
  csrf   -- every authenticated call must send the token in a header; use
            auth_headers(token) for requests made outside this client.

The HTTP layer is a requests.Session by default. Anything with the same
get/post/cookies surface works (tests pass FastAPI's TestClient).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from auth.hashing import Hasher
from auth.models import AuthErrorKind, AuthResult, Challenge

logger = logging.getLogger("sessiongate.client")


class SessionClientError(Exception):
    """The server answered with something other than an auth envelope."""


class AuthFailed(SessionClientError):
    def __init__(self, kind: AuthErrorKind, challenge_id: Optional[str] = None) -> None:
        super().__init__(kind.value)
        self.kind = kind
        self.challenge_id = challenge_id


class SessionExpired(AuthFailed):
    def __init__(self) -> None:
        super().__init__(AuthErrorKind.session_expired)


class SessionClient:
    def __init__(
        self,
        base_url: str,
        token_kind: str = "cookie",
        token_name: str = "session_token",
        hasher: Optional[Hasher] = None,
        http: Any = None,
        timeout: float = 10,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_kind = token_kind
        self.token_name = token_name
        self.hasher = hasher or Hasher()
        self.timeout = timeout
        self._http = http if http is not None else requests.Session()
        self._auth: Optional[AuthResult[Any, Any, Any]] = None
        self._challenge: Optional[Challenge] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def auth_headers(self, token: str) -> dict[str, str]:
        """Headers that carry the token in CSRF mode. Empty in cookie mode."""
        if self.token_kind == "csrf":
            return {self.token_name: token}
        return {}

    def _token_headers(self, token: Optional[str]) -> dict[str, str]:
        if token is None:
            return {}
        if self.token_kind == "cookie":
            # The jar already holds the token the server set at login.
            if self._auth is None or self._auth.token != token:
                self._drop_cookie()
                self._http.cookies.set(self.token_name, token)
            return {}
        return self.auth_headers(token)

    def _drop_cookie(self) -> None:
        """Remove every cookie named token_name, whatever its domain or path."""
        cookies = self._http.cookies
        # httpx.Cookies wraps a CookieJar; requests' RequestsCookieJar is one.
        jar = getattr(cookies, "jar", cookies)
        for cookie in [c for c in jar if c.name == self.token_name]:
            jar.clear(cookie.domain, cookie.path, cookie.name)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _decode(self, resp: Any) -> dict:
        try:
            data = resp.json()
        except ValueError as e:
            raise SessionClientError(f"HTTP {resp.status_code}: response is not JSON") from e
        if not isinstance(data, dict):
            raise SessionClientError(f"HTTP {resp.status_code}: unexpected response {data!r}")
        error = data.get("error")
        if isinstance(error, str):
            try:
                kind = AuthErrorKind(error)
            except ValueError as e:
                raise SessionClientError(f"HTTP {resp.status_code}: unknown error {error!r}") from e
            if kind is AuthErrorKind.session_expired:
                raise SessionExpired()
            raise AuthFailed(kind, data.get("challenge_id"))
        if error is not None:
            raise SessionClientError(f"HTTP {resp.status_code}: {error}")
        return data

    def _accept(self, data: dict) -> Optional[AuthResult[Any, Any, Any]]:
        """Record the outcome of connect/login/logout. Returns the auth, if any."""
        if "auth_ok" in data:
            ok = data["auth_ok"]
            self._auth = AuthResult(
                login=ok["login"],
                user_id=ok["user_id"],
                token=ok["token"],
                user_info=ok.get("user_info"),
                foreign_info=ok.get("foreign_info"),
            )
            self._challenge = None
            return self._auth
        if "auth_needed" in data:
            needed = data["auth_needed"]
            self._challenge = Challenge(challenge_id=needed["challenge_id"], challenge=needed["challenge"])
            self._auth = None
            return None
        raise SessionClientError(f"unexpected response {data!r}")

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def connect(self, token: Optional[str] = None) -> Optional[AuthResult[Any, Any, Any]]:
        """Resume a session, or fetch a challenge when there is none.

        Returns the AuthResult of a live session, None when a login is needed.

        Raises:
            SessionExpired: the session exists but its user is gone.
        """
        resp = self._http.get(self._url("/connect"), headers=self._token_headers(token), timeout=self.timeout)
        return self._accept(self._decode(resp))

    def login(
        self,
        login: Optional[str] = None,
        password: Optional[str] = None,
        foreign: Optional[tuple[str, str]] = None,
    ) -> AuthResult[Any, Any, Any]:
        """Log in with a password or a (origin, token) pair from a provider.

        Raises:
            AuthFailed: the server rejected the credentials.
            ValueError: neither credential form was given.
        """
        if foreign is not None:
            origin, token = foreign
            body: dict[str, Any] = {"foreign": {"origin": origin, "token": token}}
        elif login is not None and password is not None:
            if self._challenge is None:
                self.connect()
            if self._challenge is None:
                # connect() found a live session; log in afresh anyway.
                self.disconnected()
                self.connect()
            if self._challenge is None:
                raise SessionClientError("server returned no challenge for a fresh connect")
            pwhash = self.hasher.password(login, password)
            body = {
                "local": {
                    "login": login,
                    "challenge_id": self._challenge.challenge_id,
                    "reply": self.hasher.challenge(self._challenge.challenge, pwhash),
                }
            }
        else:
            raise ValueError("login requires login and password, or foreign=(origin, token)")

        if self.token_kind == "cookie":
            # The server sets a fresh cookie on success.
            self._drop_cookie()
        resp = self._http.post(self._url("/login"), json=body, timeout=self.timeout)
        auth = self._accept(self._decode(resp))
        if auth is None:
            raise SessionClientError("login answered with a challenge instead of a session")
        logger.info("Logged in as %s", auth.login)
        return auth

    def logout(self, token: str) -> bool:
        """End the session named by token. False if the server did not know it."""
        resp = self._http.post(self._url("/logout"), headers=self._token_headers(token), timeout=self.timeout)
        try:
            self._accept(self._decode(resp))
        except AuthFailed as e:
            if e.kind is AuthErrorKind.invalid_session:
                return False
            raise
        if self.token_kind == "cookie":
            self._drop_cookie()
        return True

    def disconnected(self) -> None:
        """Forget local state after the server rejected a request for lack of auth."""
        self._auth = None
        self._challenge = None
        if self.token_kind == "cookie":
            self._drop_cookie()

    def get(self) -> Optional[AuthResult[Any, Any, Any]]:
        """The current authentication, if a connect or login succeeded."""
        return self._auth
