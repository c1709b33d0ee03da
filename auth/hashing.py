"""
auth/hashing.py -- Keyed hashing and random token utilities.

Security design decisions:
  Challenge replies: the client never sends its password. It sends
       HMAC(key=password_hash, msg=challenge), which the server recomputes from
       the stored password hash. Replies are compared with hmac.compare_digest
       so response time does not leak how many leading characters matched.

  Password hashes: HMAC(key=login, msg=password). The login acts as the salt
       input so two users with the same password store different hashes. The
       hash must be reproducible by the client, which rules out randomly
       salted schemes like bcrypt for this flow.

  Random values: secrets.choice over an alphanumeric alphabet. Challenge ids,
       challenges and session tokens are printable so they can be written
       directly into URLs, cookies and headers without escaping.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import hmac
import secrets
import string

_ALPHABET = string.ascii_letters + string.digits

DEFAULT_TOKEN_SIZE = 30


def random_token(size: int = DEFAULT_TOKEN_SIZE) -> str:
    """Return a random printable string of the given length.

    62 symbols x 30 characters gives ~178 bits of entropy -- guessing a live
    session token is computationally infeasible.
    """
    return "".join(secrets.choice(_ALPHABET) for _ in range(size))


class Hasher:
    """HMAC-based keyed hash shared by server and client.

    algorithm is any hashlib digest name. Both sides must agree on it; the
    server reads it from Settings.hash_algorithm.
    """

    def __init__(self, algorithm: str = "sha256") -> None:
        self.algorithm = algorithm

    def keyed_hash(self, message: str, secret: str) -> str:
        return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), self.algorithm).hexdigest()

    def password(self, login: str, password: str) -> str:
        """Return the stored form of a password, salted by the login."""
        return self.keyed_hash(password, login)

    def challenge(self, challenge: str, pwhash: str) -> str:
        """Return the expected reply for a challenge and a password hash."""
        return self.keyed_hash(challenge, pwhash)

    def verify_reply(self, challenge: str, pwhash: str, reply: str) -> bool:
        expected = self.challenge(challenge, pwhash)
        return hmac.compare_digest(expected.encode("utf-8"), reply.encode("utf-8"))


def get_hasher(algorithm: str) -> Hasher:
    # Variable-length digests (shake_*) are valid hashlib names but unusable by HMAC.
    try:
        hmac.new(b"k", b"m", algorithm).hexdigest()
    except (TypeError, ValueError) as e:
        raise ValueError(f"unsupported HMAC digest: {algorithm!r}") from e
    return Hasher(algorithm)
