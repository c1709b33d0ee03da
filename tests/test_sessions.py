"""Unit tests for auth/sessions.py -- InMemorySessionStore.

Covers:
- create_session mints a unique token, retrying on collision
- get_session refreshes last_access
- add_session binds a caller-supplied token with an empty login
- remove_session is owner-checked and idempotent
"""

from __future__ import annotations

import asyncio

from auth.sessions import InMemorySessionStore


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCreateSession:
    def test_create_and_lookup(self):
        store = InMemorySessionStore()
        session = asyncio.run(store.create_session("alice", "alice"))
        assert session.login == "alice"
        assert session.user_id == "alice"
        assert session.variables == {}
        assert len(session.token) == 30
        assert asyncio.run(store.get_session(session.token)) is session

    def test_tokens_are_unique(self):
        store = InMemorySessionStore()

        async def make_many():
            return [await store.create_session("alice", "alice") for _ in range(100)]

        sessions = asyncio.run(make_many())
        assert len({s.token for s in sessions}) == 100
        assert len(store) == 100

    def test_collision_retries(self):
        values = iter(["tok", "tok", "tok2"])
        store = InMemorySessionStore(generator=lambda size: next(values))
        first = asyncio.run(store.create_session("alice", "alice"))
        second = asyncio.run(store.create_session("bob", "bob"))
        assert first.token == "tok"
        assert second.token == "tok2"


class TestGetSession:
    def test_refreshes_last_access(self):
        clock = FakeClock(100.0)
        store = InMemorySessionStore(clock=clock)
        session = asyncio.run(store.create_session("alice", "alice"))
        assert session.last_access == 100.0
        clock.now = 250.0
        found = asyncio.run(store.get_session(session.token))
        assert found is not None
        assert found.last_access == 250.0

    def test_unknown_token(self):
        store = InMemorySessionStore()
        assert asyncio.run(store.get_session("missing")) is None


class TestAddSession:
    def test_binds_given_token(self):
        store = InMemorySessionStore(clock=FakeClock(7.0))
        asyncio.run(store.add_session("provider-token", "carol"))
        session = asyncio.run(store.get_session("provider-token"))
        assert session is not None
        assert session.login == ""
        assert session.user_id == "carol"
        assert session.token == "provider-token"
        assert session.last_access == 7.0


class TestRemoveSession:
    def test_owner_removes(self):
        store = InMemorySessionStore()
        session = asyncio.run(store.create_session("alice", "alice"))
        asyncio.run(store.remove_session("alice", session.token))
        assert asyncio.run(store.get_session(session.token)) is None

    def test_other_user_cannot_remove(self):
        """A guessed token cannot end somebody else's session."""
        store = InMemorySessionStore()
        session = asyncio.run(store.create_session("alice", "alice"))
        asyncio.run(store.remove_session("mallory", session.token))
        assert asyncio.run(store.get_session(session.token)) is session

    def test_unknown_token_is_noop(self):
        store = InMemorySessionStore()
        asyncio.run(store.remove_session("alice", "missing"))
        assert len(store) == 0
