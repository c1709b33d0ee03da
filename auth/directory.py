"""
auth/directory.py -- User directory capability and its in-memory default.

The directory answers one question per login: what must this identity
present? A local user presents a challenge reply keyed by its password hash;
a federated user presents a token that a ForeignProvider vouches for. The two
are mutually exclusive per user.

Users file format (load_users):
  [
    {"login": "alice", "password": "...", "user_info": {...}},
    {"login": "bob", "pwhash": "<hex>"},
    {"login": "carol@example.com", "kind": "jwt"}
  ]

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Optional, Protocol

from auth.errors import ForeignAuthError, NoPasswordProvided, UserAlreadyDefined
from auth.foreign import ForeignProvider
from auth.hashing import Hasher
from auth.models import AuthRequirement, ForeignRequirement, LocalRequirement, UserId, UserInfo

logger = logging.getLogger("sessiongate.auth.directory")

UserLookup = tuple[AuthRequirement, Any, Any]


class UserDirectory(Protocol):
    async def find_user(self, login: str) -> Optional[UserLookup]: ...

    async def check_foreign(self, origin: str, token: str) -> str: ...


@dataclass
class _User(Generic[UserId, UserInfo]):
    login: str
    user_id: UserId
    user_info: UserInfo
    pwhash: str = ""
    kind: Optional[str] = None  # provider tag; None = local password user


class InMemoryUserDirectory:
    """Dict-backed directory. The user id of every user is its login."""

    def __init__(
        self,
        hasher: Optional[Hasher] = None,
        providers: Optional[dict[str, ForeignProvider]] = None,
    ) -> None:
        self.hasher = hasher or Hasher()
        self.providers: dict[str, ForeignProvider] = dict(providers or {})
        self._users: dict[str, _User[str, Any]] = {}

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def create_user(
        self,
        login: str,
        user_info: Any = None,
        *,
        pwhash: Optional[str] = None,
        password: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> None:
        """Register a user.

        A federated user (kind set) stores no password. A local user needs
        either a precomputed pwhash or a plaintext password, which is hashed
        with the login as salt before storage.

        Raises:
            UserAlreadyDefined: login already exists.
            NoPasswordProvided: local user with neither pwhash nor password.
        """
        logger.debug("create_user %r ?", login)
        if login in self._users:
            raise UserAlreadyDefined(login)
        if kind is not None:
            user = _User(login=login, user_id=login, user_info=user_info, kind=kind)
        else:
            if pwhash is None:
                if password is None:
                    raise NoPasswordProvided(login)
                pwhash = self.hasher.password(login, password)
            user = _User(login=login, user_id=login, user_info=user_info, pwhash=pwhash)
        self._users[login] = user
        logger.debug("create_user %r ok", login)

    def remove_user(self, login: str) -> None:
        self._users.pop(login, None)

    def register_provider(self, origin: str, provider: ForeignProvider) -> None:
        self.providers[origin] = provider

    def load_users(self, path: str | Path) -> int:
        """Seed the directory from a JSON users file. Returns the number loaded."""
        entries = json.loads(Path(path).read_text(encoding="utf-8"))
        for entry in entries:
            self.create_user(
                entry["login"],
                entry.get("user_info"),
                pwhash=entry.get("pwhash"),
                password=entry.get("password"),
                kind=entry.get("kind"),
            )
        logger.info("Loaded %d user(s) from %s", len(entries), path)
        return len(entries)

    def __len__(self) -> int:
        return len(self._users)

    # ------------------------------------------------------------------
    # UserDirectory interface
    # ------------------------------------------------------------------

    async def find_user(self, login: str) -> Optional[UserLookup]:
        user = self._users.get(login)
        if user is None:
            return None
        required: AuthRequirement
        if user.kind is None:
            required = LocalRequirement(password_hash=user.pwhash)
        else:
            required = ForeignRequirement(provider=user.kind)
        return required, user.user_id, user.user_info

    async def check_foreign(self, origin: str, token: str) -> str:
        """Return the local login a federated token maps to.

        Raises:
            ForeignAuthError: unknown origin, or the provider rejected the token.
        """
        provider = self.providers.get(origin)
        if provider is None:
            raise ForeignAuthError(400, f"Unknown origin {origin!r}")
        login = await provider.verify(token)
        logger.debug("check_foreign %r ok", origin)
        return login
