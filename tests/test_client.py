"""
tests/test_client.py -- SessionClient against the real app.

The client's HTTP layer is swapped for FastAPI's TestClient, which shares
the get/post/cookies surface of requests.Session. This runs the complete
challenge-response exchange -- connect, hash, reply, login -- through the
actual routes.
"""

from __future__ import annotations

import pytest
import requests
from conftest import BASE_URL, CSRF_HEADER, TOKEN_NAME
from fastapi.testclient import TestClient

from auth.models import AuthErrorKind
from client.session import AuthFailed, SessionClient, SessionExpired


@pytest.fixture
def cookie_session(cookie_client: TestClient) -> SessionClient:
    cookie_client.cookies.clear()
    return SessionClient(BASE_URL, token_kind="cookie", token_name=TOKEN_NAME, http=cookie_client)


class TestCookieClient:
    def test_connect_without_session(self, cookie_session: SessionClient) -> None:
        assert cookie_session.connect() is None
        assert cookie_session.get() is None

    def test_password_login(self, cookie_session: SessionClient) -> None:
        auth = cookie_session.login(login="alice", password="wonderland")
        assert auth.login == "alice"
        assert auth.user_info == {"name": "Alice"}
        assert cookie_session.get() == auth
        # The cookie jar carries the token on the next connect.
        resumed = cookie_session.connect()
        assert resumed is not None
        assert resumed.token == auth.token

    def test_wrong_password(self, cookie_session: SessionClient) -> None:
        with pytest.raises(AuthFailed) as exc_info:
            cookie_session.login(login="alice", password="nope")
        assert exc_info.value.kind is AuthErrorKind.bad_user_or_password

    def test_retry_after_failure(self, cookie_session: SessionClient) -> None:
        """The challenge survives a failed attempt, so a retry needs no new connect."""
        with pytest.raises(AuthFailed):
            cookie_session.login(login="alice", password="nope")
        auth = cookie_session.login(login="alice", password="wonderland")
        assert auth.login == "alice"

    def test_login_while_connected_starts_fresh(self, cookie_session: SessionClient) -> None:
        first = cookie_session.login(login="alice", password="wonderland")
        cookie_session.connect()
        second = cookie_session.login(login="bob", password="builder")
        assert second.login == "bob"
        assert second.token != first.token

    def test_logout(self, cookie_session: SessionClient) -> None:
        auth = cookie_session.login(login="alice", password="wonderland")
        assert cookie_session.logout(auth.token) is True
        assert cookie_session.get() is None
        assert cookie_session.logout(auth.token) is False

    def test_foreign_login(self, cookie_session: SessionClient) -> None:
        auth = cookie_session.login(foreign=("static", "static-dave"))
        assert auth.login == "dave"
        assert auth.foreign_info == "static"

    def test_session_expired(self, cookie_session: SessionClient, cookie_client: TestClient) -> None:
        directory = cookie_client.app.state.directory
        directory.create_user("short-lived", password="pw")
        cookie_session.login(login="short-lived", password="pw")
        directory.remove_user("short-lived")
        with pytest.raises(SessionExpired):
            cookie_session.connect()

    def test_login_needs_credentials(self, cookie_session: SessionClient) -> None:
        with pytest.raises(ValueError):
            cookie_session.login(login="alice")


class TestCsrfClient:
    def test_header_transport(self, csrf_client: TestClient) -> None:
        client = SessionClient(BASE_URL, token_kind="csrf", token_name=CSRF_HEADER, http=csrf_client)
        auth = client.login(login="bob", password="builder")
        assert client.auth_headers(auth.token) == {CSRF_HEADER: auth.token}

        client.disconnected()
        resumed = client.connect(token=auth.token)
        assert resumed is not None and resumed.login == "bob"
        assert client.logout(auth.token) is True
        assert client.connect(token=auth.token) is None

    def test_cookie_mode_has_no_auth_headers(self) -> None:
        client = SessionClient(BASE_URL, token_kind="cookie", http=object())
        assert client.auth_headers("tok") == {}


class _JsonResponse:
    def __init__(self, data: dict, status_code: int = 200) -> None:
        self._data = data
        self.status_code = status_code

    def json(self) -> dict:
        return self._data


def _auth_ok(token: str) -> dict:
    return {"auth_ok": {"login": "alice", "user_id": "alice", "token": token}}


class TestRequestsCookieJar:
    """requests keeps one cookie per (domain, path, name), so a token set by
    hand must replace the one the server stored under its host domain."""

    @pytest.fixture
    def http(self) -> requests.Session:
        session = requests.Session()
        session.cookies.set(TOKEN_NAME, "A", domain="localhost.local", path="/")
        return session

    @staticmethod
    def _jar(http: requests.Session) -> list[tuple[str, str]]:
        return [(c.name, c.value) for c in http.cookies]

    def test_connect_with_other_token_replaces_cookie(self, http: requests.Session) -> None:
        sent: list[list[tuple[str, str]]] = []

        def fake_get(url, headers=None, timeout=None):
            sent.append(self._jar(http))
            return _JsonResponse(_auth_ok("B"))

        http.get = fake_get
        client = SessionClient(BASE_URL, token_kind="cookie", token_name=TOKEN_NAME, http=http)
        auth = client.connect(token="B")
        assert auth is not None and auth.token == "B"
        assert sent == [[(TOKEN_NAME, "B")]]

        client.disconnected()
        assert self._jar(http) == []
        assert client.get() is None

    def test_logout_with_other_token_leaves_no_cookie(self, http: requests.Session) -> None:
        sent: list[list[tuple[str, str]]] = []

        def fake_post(url, headers=None, timeout=None, json=None):
            sent.append(self._jar(http))
            return _JsonResponse({"auth_needed": {"challenge_id": "cid", "challenge": "ch"}})

        http.post = fake_post
        client = SessionClient(BASE_URL, token_kind="cookie", token_name=TOKEN_NAME, http=http)
        assert client.logout("B") is True
        assert sent == [[(TOKEN_NAME, "B")]]
        assert self._jar(http) == []

    def test_disconnected_with_duplicate_cookies(self, http: requests.Session) -> None:
        http.cookies.set(TOKEN_NAME, "B", domain="", path="/")
        client = SessionClient(BASE_URL, token_kind="cookie", token_name=TOKEN_NAME, http=http)
        client.disconnected()
        assert self._jar(http) == []
