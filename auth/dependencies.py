"""
auth/dependencies.py -- FastAPI glue between Starlette requests and the auth core.

inbound_request() converts a Starlette Request into the transport-neutral
InboundRequest that the resolver and protocol consume. apply_reply() writes
a protocol Reply's side effects (status, cookies, headers) onto a response.

try_get_session() is the soft variant (returns None on failure).
require_session() wraps it and raises HTTP 401 if there is no live session.
Application endpoints declare it with Depends() to require a login.

Layer rule: no imports from api/ or client/.
  auth/dependencies.py may import from fastapi because this module is part
  of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request, Response

from auth.models import AuthErrorKind, InboundRequest, Session
from auth.protocol import Reply
from auth.resolver import get_request_session


def inbound_request(request: Request) -> InboundRequest:
    headers: dict[str, list[str]] = {}
    for name, value in request.headers.items():
        headers.setdefault(name.lower(), []).append(value)
    return InboundRequest(
        query=dict(request.query_params),
        cookies=dict(request.cookies),
        headers=headers,
    )


def apply_reply(reply: Reply, response: Response, secure_cookies: bool = False) -> None:
    """Copy the transport instructions of a Reply onto a response.

    httponly=True: JS cannot read the session cookie (XSS mitigation).
    samesite="lax": cookie not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    """
    response.status_code = reply.status
    for name, value in reply.cookies.items():
        response.set_cookie(
            name,
            value=value,
            httponly=True,
            samesite="lax",
            secure=secure_cookies,
        )
    for name in reply.cleared_cookies:
        response.delete_cookie(name)
    for name, value in reply.headers:
        response.headers.append(name, value)
    response.headers["Cache-Control"] = "no-store"  # [M5]


async def try_get_session(request: Request) -> Optional[Session[Any]]:
    """Return the live session named by the request, or None. Never raises."""
    state = request.app.state
    return await get_request_session(state.security, inbound_request(request), state.sessions)


async def require_session(request: Request) -> Session[Any]:
    """Require a live session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: Session = Depends(require_session)): ...
    """
    session = await try_get_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": AuthErrorKind.invalid_session.value, "message": "Authentication required."},
        )
    return session
