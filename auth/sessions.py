"""
auth/sessions.py -- Session storage capability and its in-memory default.

Pattern: Repository. SessionStore is the interface AuthProtocol depends on;
InMemorySessionStore is the default backing for a single-process server.
Methods are coroutines so a backend may do I/O (Redis, a database) without
changing the protocol.

Concurrency: the in-memory store never awaits in the middle of a mutation.
On a single asyncio event loop each call runs to completion before another
request is scheduled, so no lock is needed. A thread-pool deployment must
add per-token locking.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generic, Optional, Protocol

from auth.hashing import DEFAULT_TOKEN_SIZE, random_token
from auth.models import Session, UserId

logger = logging.getLogger("sessiongate.auth.sessions")


class SessionStore(Protocol[UserId]):
    async def add_session(self, token: str, user_id: UserId) -> None: ...

    async def create_session(self, login: str, user_id: UserId) -> Session[UserId]: ...

    async def get_session(self, token: str) -> Optional[Session[UserId]]: ...

    async def remove_session(self, user_id: UserId, token: str) -> None: ...


class InMemorySessionStore(Generic[UserId]):
    """Dict-backed session table keyed by token.

    Sessions live until logout; there is no expiry sweep.
    """

    def __init__(
        self,
        token_size: int = DEFAULT_TOKEN_SIZE,
        clock: Callable[[], float] = time.time,
        generator: Callable[[int], str] = random_token,
    ) -> None:
        self.token_size = token_size
        self._clock = clock
        self._generate = generator
        self._sessions: dict[str, Session[UserId]] = {}

    async def add_session(self, token: str, user_id: UserId) -> None:
        """Bind a session to a caller-supplied token (federated login)."""
        self._sessions[token] = Session(
            login="",
            user_id=user_id,
            token=token,
            last_access=self._clock(),
        )

    async def create_session(self, login: str, user_id: UserId) -> Session[UserId]:
        token = self._generate(self.token_size)
        while token in self._sessions:
            token = self._generate(self.token_size)
        session = Session(login=login, user_id=user_id, token=token, last_access=self._clock())
        self._sessions[token] = session
        logger.debug("session created for %s", login)
        return session

    async def get_session(self, token: str) -> Optional[Session[UserId]]:
        session = self._sessions.get(token)
        if session is not None:
            session.last_access = self._clock()
        return session

    async def remove_session(self, user_id: UserId, token: str) -> None:
        """Delete the session only if user_id owns it.

        A guessed or stolen token cannot be used to end somebody else's
        session. Unknown tokens and owner mismatches are silent no-ops.
        """
        session = await self.get_session(token)
        if session is None:
            return
        if session.user_id == user_id:
            del self._sessions[token]

    def __len__(self) -> int:
        return len(self._sessions)
