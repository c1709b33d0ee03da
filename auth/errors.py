"""
auth/errors.py -- Exceptions raised by the auth capabilities.

Request-flow failures never use these: AuthProtocol returns AuthError values.
These cover directory administration (create_user) and federated token
checks, which the protocol catches and maps to Invalid_session.
"""

from __future__ import annotations

from typing import Optional


class DirectoryError(Exception):
    """Base class for user directory administration failures."""


class UserAlreadyDefined(DirectoryError):
    def __init__(self, login: str) -> None:
        super().__init__(f"User {login!r} is already defined")
        self.login = login


class NoPasswordProvided(DirectoryError):
    def __init__(self, login: str) -> None:
        super().__init__(f"No password or password hash provided for {login!r}")
        self.login = login


class ForeignAuthError(Exception):
    """A federated token was rejected.

    code is a transport status suggested by the provider (e.g. 401 for a bad
    signature, 500 for a lookup failure); message is optional detail that is
    logged but never returned to the client.
    """

    def __init__(self, code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"foreign authentication failed ({code})")
        self.code = code
        self.message = message
