"""
API request and response models for the SessionGate endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire shapes:
  connect -> {"auth_needed": Challenge} | {"auth_ok": AuthResult} | {"error": kind}
  login   <- {"local": {...}} | {"foreign": {...}}
  login   -> {"auth_ok": AuthResult} | {"error": kind[, "challenge_id"]}
  logout  -> {"auth_needed": Challenge} | {"error": kind}
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from auth.models import AuthError, AuthNeeded, AuthOk, AuthOutcome, ForeignLogin, LocalLogin, LoginRequest

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LocalLoginBody(BaseModel):
    # Not stripped: values reach the protocol exactly as sent.
    login: str = Field(min_length=1, max_length=255)
    challenge_id: str = Field(min_length=1, max_length=255)
    reply: str = Field(min_length=1, max_length=1024)


class ForeignLoginBody(BaseModel):
    origin: str = Field(min_length=1, max_length=255)
    token: str = Field(min_length=1, max_length=8192)


class LoginBody(BaseModel):
    """Request body for POST /login. Exactly one of local / foreign is set."""

    local: Optional[LocalLoginBody] = None
    foreign: Optional[ForeignLoginBody] = None

    @model_validator(mode="after")
    def exactly_one_variant(self) -> "LoginBody":
        if (self.local is None) == (self.foreign is None):
            raise ValueError("Provide exactly one of 'local' or 'foreign'.")
        return self

    def to_domain(self) -> LoginRequest:
        if self.local is not None:
            return LocalLogin(
                login=self.local.login,
                challenge_id=self.local.challenge_id,
                reply=self.local.reply,
            )
        if self.foreign is None:
            raise TypeError("LoginBody carries neither 'local' nor 'foreign'.")
        return ForeignLogin(origin=self.foreign.origin, token=self.foreign.token)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ChallengeModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    challenge_id: str
    challenge: str


class AuthResultModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str
    user_id: Any
    token: str
    user_info: Any = None
    foreign_info: Optional[Any] = None


class AuthResponse(BaseModel):
    """Envelope for every auth endpoint. Exactly one field is populated."""

    model_config = ConfigDict(frozen=True)

    auth_needed: Optional[ChallengeModel] = None
    auth_ok: Optional[AuthResultModel] = None
    error: Optional[str] = None
    challenge_id: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: AuthOutcome) -> "AuthResponse":
        """Build the wire envelope from a protocol outcome (Factory Method)."""
        if isinstance(outcome, AuthNeeded):
            c = outcome.challenge
            return cls(auth_needed=ChallengeModel(challenge_id=c.challenge_id, challenge=c.challenge))
        if isinstance(outcome, AuthOk):
            a = outcome.auth
            return cls(
                auth_ok=AuthResultModel(
                    login=a.login,
                    user_id=a.user_id,
                    token=a.token,
                    user_info=a.user_info,
                    foreign_info=a.foreign_info,
                )
            )
        if isinstance(outcome, AuthError):
            return cls(error=outcome.kind.value, challenge_id=outcome.challenge_id)
        raise TypeError(f"Unknown auth outcome: {outcome!r}")

    def to_wire(self) -> dict:
        """Serialize without the unset branches of the union."""
        return self.model_dump(exclude_none=True)


class SessionInfo(BaseModel):
    """Response for GET /session."""

    model_config = ConfigDict(frozen=True)

    login: str
    user_id: Any
    last_access: float


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
