"""Password hashing (Argon2id) and bearer token handling (JWT)."""

from dataclasses import dataclass
from datetime import timedelta
from typing import NamedTuple
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import JWTError, jwt

from learntrack.config.settings import get_settings
from learntrack.core.database.columns import utc_now


ACCESS_TOKEN_TYPE = "access"
REQUIRED_CLAIMS = frozenset({"sub", "email", "role"})

# OWASP minimums for Argon2id: 19 MiB memory, 2 passes, 1 lane
_hasher = PasswordHasher(
    time_cost=2, memory_cost=19456, parallelism=1, hash_len=32, salt_len=16
)


class InvalidTokenError(Exception):
    """Bearer token is malformed, expired, or of the wrong type."""


class PasswordCheck(NamedTuple):
    valid: bool
    rehash: str | None = None


@dataclass(frozen=True, slots=True)
class TokenClaims:
    user_id: UUID
    email: str
    role: str
    name: str | None = None


def hash_password(password: str) -> str:
    """Return a self-describing ``$argon2id$...`` hash with its own salt."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> PasswordCheck:
    """Check a password against a stored hash.

    ``rehash`` carries a replacement hash when the stored one was made with
    weaker parameters than the current hasher uses.
    """
    try:
        _hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return PasswordCheck(valid=False)

    if _hasher.check_needs_rehash(password_hash):
        return PasswordCheck(valid=True, rehash=_hasher.hash(password))
    return PasswordCheck(valid=True)


def issue_access_token(
    user_id: UUID | str,
    email: str,
    role: str,
    *,
    name: str | None = None,
    ttl: timedelta | None = None,
) -> str:
    settings = get_settings()
    issued = utc_now()
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued,
        "exp": issued + (ttl or timedelta(minutes=settings.jwt_ttl_minutes)),
    }
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def read_access_token(token: str) -> TokenClaims:
    """Verify signature and expiry, then unpack the user claims.

    Raises:
        InvalidTokenError: for any token that should not authenticate a request
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("not an access token")
    missing = REQUIRED_CLAIMS - payload.keys()
    if missing:
        raise InvalidTokenError(f"missing claims: {', '.join(sorted(missing))}")

    try:
        user_id = UUID(payload["sub"])
    except ValueError as e:
        raise InvalidTokenError("subject is not a user id") from e

    return TokenClaims(
        user_id=user_id,
        email=payload["email"],
        role=payload["role"],
        name=payload.get("name"),
    )
