"""
auth/resolver.py -- Locate the session token carried by a request.

Sources are tried in the order the endpoint's SecurityScheme lists them. The
first source that yields a value wins, even if that value turns out not to
name a live session -- later sources are never consulted as a fallback.

  QuerySource(name)  -- ?name=<token>
  CookieSource(name) -- Cookie: name=<token>
  HeaderSource(name) -- <name>: <token>; matched case-insensitively, first
                        value wins when the header repeats.
"""

from __future__ import annotations

from typing import Any, Optional

from auth.models import CookieSource, HeaderSource, InboundRequest, QuerySource, SecurityScheme, Session, TokenSource
from auth.sessions import SessionStore


def _from_source(source: TokenSource, request: InboundRequest) -> Optional[str]:
    if isinstance(source, QuerySource):
        return request.query.get(source.name)
    if isinstance(source, CookieSource):
        return request.cookies.get(source.name)
    if isinstance(source, HeaderSource):
        values = request.headers.get(source.name.lower())
        return values[0] if values else None
    raise TypeError(f"Unknown token source: {source!r}")


def resolve_token(scheme: SecurityScheme, request: InboundRequest) -> Optional[str]:
    """Return the first token present in the request, or None.

    None means "no candidate token"; it says nothing about validity.
    """
    for source in scheme:
        token = _from_source(source, request)
        if token is not None:
            return token
    return None


async def get_request_session(
    scheme: SecurityScheme, request: InboundRequest, sessions: SessionStore[Any]
) -> Optional[Session[Any]]:
    """Resolve the request's token and look it up. None if absent or unknown."""
    token = resolve_token(scheme, request)
    if token is None:
        return None
    return await sessions.get_session(token)
