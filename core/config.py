"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SessionGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_kind -> TOKEN_KIND). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment.

Security notes:
  [M6] FOREIGN_JWT_SECRET shorter than 32 chars is rejected outright. HS256
       verification relies on key entropy -- a short key lets an attacker
       forge federated identities.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or client/.
"""

import hmac
import logging
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessiongate.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    api_prefix: str = ""
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    allowed_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Token transport
    # ------------------------------------------------------------------

    # "cookie": the session token rides in a cookie named token_name.
    # "csrf":   the client echoes the token in the token_name request header.
    token_kind: Literal["cookie", "csrf"] = "cookie"
    token_name: str = "session_token"
    # Empty string disables the query parameter source.
    token_query_param: str = ""
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Challenges and hashing
    # ------------------------------------------------------------------

    max_challenges: int = 10_000
    challenge_size: int = 30
    hash_algorithm: str = "sha256"

    # 0 disables audit lines; 1 logs every rejected login/logout.
    audit_verbosity: int = 0

    # JSON file used to seed the in-memory user directory at startup.
    users_file: str = ""

    # ------------------------------------------------------------------
    # Federated login (optional -- empty secret means provider is disabled)
    # ------------------------------------------------------------------

    foreign_jwt_secret: str = ""
    foreign_jwt_origin: str = "jwt"
    foreign_jwt_algorithm: str = "HS256"
    foreign_jwt_audience: str = ""
    foreign_jwt_issuer: str = ""
    foreign_jwt_login_claim: str = "email"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth_settings(self) -> "Settings":
        """Reject configurations that would leave authentication broken or weak.

        - token_name must be set: it names the cookie or the CSRF header.
        - hash_algorithm must produce a fixed-size HMAC digest, since replies are
          HMAC digests computed by both client and server.
        - max_challenges and challenge_size must be positive.
        - A configured FOREIGN_JWT_SECRET must be at least 32 characters [M6].
        """
        if not self.token_name:
            raise ValueError("TOKEN_NAME must not be empty.")
        try:
            hmac.new(b"k", b"m", self.hash_algorithm).hexdigest()
        except (TypeError, ValueError) as e:
            raise ValueError(f"HASH_ALGORITHM {self.hash_algorithm!r} cannot be used with HMAC.") from e
        if self.max_challenges < 1:
            raise ValueError("MAX_CHALLENGES must be at least 1.")
        if self.challenge_size < 8:
            raise ValueError("CHALLENGE_SIZE must be at least 8 characters.")
        if self.foreign_jwt_secret and len(self.foreign_jwt_secret) < 32:
            raise ValueError("FOREIGN_JWT_SECRET must be at least 32 characters.")
        if self.debug and self.token_kind == "cookie" and not self.secure_cookies:
            logger.warning("WARNING: Session cookies are sent without the Secure flag.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
