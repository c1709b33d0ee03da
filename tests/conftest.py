"""
tests/conftest.py -- Shared test fixtures for SessionGate integration tests.

This module provides:
  - make_directory(): an InMemoryUserDirectory with local and federated users
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - cookie_client: TestClient against an app in cookie transport mode
  - csrf_client: TestClient against an app in CSRF header mode

Design: each fixture builds a fresh directory and fresh stores, so state
never leaks between test modules. The TestClient base URL is localhost
because TrustedHostMiddleware rejects the default "testserver" host.

Known users:
  alice              -- local, password "wonderland"
  bob                -- local, password "builder"
  carol@example.com  -- federated via the "jwt" origin
  dave               -- federated via the "static" origin, token "static-dave"
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from api.main import app, configure_auth
from auth.directory import InMemoryUserDirectory
from auth.foreign import JwtForeignProvider, StaticForeignProvider
from auth.hashing import Hasher
from core.config import Settings

BASE_URL = "http://localhost"
JWT_SECRET = "test-foreign-secret-0123456789abcdef"
TOKEN_NAME = "session_token"
CSRF_HEADER = "X-Session-Token"


def make_directory(hasher: Hasher | None = None) -> InMemoryUserDirectory:
    hasher = hasher or Hasher()
    directory = InMemoryUserDirectory(
        hasher=hasher,
        providers={
            "jwt": JwtForeignProvider(secret=JWT_SECRET),
            "static": StaticForeignProvider({"static-dave": "dave"}),
        },
    )
    directory.create_user("alice", {"name": "Alice"}, password="wonderland")
    directory.create_user("bob", {"name": "Bob"}, password="builder")
    directory.create_user("carol@example.com", {"name": "Carol"}, kind="jwt")
    directory.create_user("dave", {"name": "Dave"}, kind="static")
    return directory


def reply_for(login: str, password: str, challenge: str) -> str:
    hasher = Hasher()
    return hasher.challenge(challenge, hasher.password(login, password))


def _patch_lifespan(settings: Settings, directory: InMemoryUserDirectory):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        configure_auth(app, settings, directory=directory)
        yield

    return test_lifespan


def _client_for(settings: Settings) -> Generator[TestClient, None, None]:
    app.router.lifespan_context = _patch_lifespan(settings, make_directory())
    with TestClient(app, base_url=BASE_URL, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture(scope="module")
def cookie_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient for an app in cookie mode with ?token= also accepted."""
    settings = Settings(token_kind="cookie", token_name=TOKEN_NAME, token_query_param="token")
    yield from _client_for(settings)


@pytest.fixture(scope="module")
def csrf_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient for an app in CSRF header mode."""
    settings = Settings(token_kind="csrf", token_name=CSRF_HEADER)
    yield from _client_for(settings)
