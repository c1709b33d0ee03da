"""
auth/foreign.py -- Federated identity providers.

A provider validates a token issued by an external identity service and
returns the local login it maps to. The user directory keeps a registry of
providers keyed by origin and dispatches check_foreign() to them.

Supported providers:
  JwtForeignProvider    -- python-jose verification of a signed JWT. The
                           login is read from a configurable claim.
  StaticForeignProvider -- fixed token -> login table. Used for development
                           and tests, where no real identity service exists.

Security notes:
  [H1] JWT expiry, audience and issuer are enforced by jose.jwt.decode().
       Any JWTError is a rejection -- the caller maps it to Invalid_session.
  The raw token is never logged, only the origin and the failure reason.

Layer rule: no imports from api/ or client/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from jose import JWTError, jwt

from auth.errors import ForeignAuthError
from core.config import Settings

logger = logging.getLogger("sessiongate.auth.foreign")


class ForeignProvider(Protocol):
    async def verify(self, token: str) -> str: ...


class JwtForeignProvider:
    """Verify a provider-signed JWT and map one of its claims to a login."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        login_claim: str = "email",
    ) -> None:
        self._secret = secret
        self.algorithm = algorithm
        self.audience = audience or None
        self.issuer = issuer or None
        self.login_claim = login_claim

    async def verify(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            raise ForeignAuthError(401, f"invalid token: {e}") from e
        login = claims.get(self.login_claim)
        if not login or not isinstance(login, str):
            raise ForeignAuthError(401, f"token has no {self.login_claim!r} claim")
        return login


class StaticForeignProvider:
    """Token table standing in for an identity service."""

    def __init__(self, tokens: Optional[dict[str, str]] = None) -> None:
        self._tokens: dict[str, str] = dict(tokens or {})

    def register(self, token: str, login: str) -> None:
        self._tokens[token] = login

    async def verify(self, token: str) -> str:
        login = self._tokens.get(token)
        if login is None:
            raise ForeignAuthError(500, "User not found")
        return login


def providers_from_settings(settings: Settings) -> dict[str, ForeignProvider]:
    """Build the provider registry from configuration.

    Only providers whose secret is configured get registered.
    """
    providers: dict[str, ForeignProvider] = {}
    if settings.foreign_jwt_secret:
        providers[settings.foreign_jwt_origin] = JwtForeignProvider(
            secret=settings.foreign_jwt_secret,
            algorithm=settings.foreign_jwt_algorithm,
            audience=settings.foreign_jwt_audience,
            issuer=settings.foreign_jwt_issuer,
            login_claim=settings.foreign_jwt_login_claim,
        )
        logger.info("JWT foreign provider registered (origin: %s)", settings.foreign_jwt_origin)
    return providers
