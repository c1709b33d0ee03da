"""
api/routes/v1/session.py -- Challenge-response session endpoints.

Routes:
  GET  /connect  -- resume the current session or receive a login challenge
  POST /login    -- answer a challenge (local) or present a provider token (foreign)
  POST /logout   -- end the current session; returns a fresh challenge
  GET  /session  -- current session info (requires a session)

The handlers are thin: they convert the Starlette request, call the
AuthProtocol on app.state, and apply the returned Reply. All decisions about
status codes, cookies and headers live in auth/protocol.py.

Security:
  [M5] Cache-Control: no-store on every auth response (apply_reply).
  Each endpoint resolves tokens through app.state.security, the ordered list
  of token sources built from Settings at startup.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, LoginBody, SessionInfo
from auth.dependencies import apply_reply, inbound_request, require_session
from auth.models import Session
from auth.protocol import AuthProtocol, Reply

# Auth policy:
# - GET  /connect:  public -- issues challenges to anonymous callers
# - POST /login:    public
# - POST /logout:   requires a session (401 Invalid_session otherwise)
# - GET  /session:  requires a session (require_session)
router = APIRouter()


def _respond(request: Request, reply: Reply) -> JSONResponse:
    resp = JSONResponse(content=AuthResponse.from_outcome(reply.result).to_wire())
    apply_reply(reply, resp, secure_cookies=request.app.state.settings.secure_cookies)
    return resp


@router.get("/connect", response_model=AuthResponse)
async def connect(request: Request) -> JSONResponse:
    """Return auth_ok for a live session, otherwise auth_needed with a challenge.

    A session whose user has been removed answers 440 Session_expired.
    """
    protocol: AuthProtocol = request.app.state.auth
    reply = await protocol.connect(request.app.state.security, inbound_request(request))
    return _respond(request, reply)


@router.post("/login", response_model=AuthResponse)
async def login(request: Request, body: LoginBody) -> JSONResponse:
    """Authenticate with a challenge reply or a federated token.

    Wrong user and wrong reply both answer Bad_user_or_password so the
    response does not reveal whether a login exists.
    """
    protocol: AuthProtocol = request.app.state.auth
    reply = await protocol.login(body.to_domain())
    return _respond(request, reply)


@router.post("/logout", response_model=AuthResponse)
async def logout(request: Request) -> JSONResponse:
    """End the caller's session and hand back a fresh challenge."""
    protocol: AuthProtocol = request.app.state.auth
    reply = await protocol.logout(request.app.state.security, inbound_request(request))
    return _respond(request, reply)


@router.get("/session", response_model=SessionInfo)
async def current_session(session: Session = Depends(require_session)) -> SessionInfo:
    """Return the login and last access time of the current session."""
    return SessionInfo(login=session.login, user_id=session.user_id, last_access=session.last_access)
