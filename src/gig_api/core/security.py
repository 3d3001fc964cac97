"""Password hashing and JWT handling.

PyJWT signs the tokens; passlib's bcrypt context hashes passwords.  The
fraud interceptor reuses :func:`bearer_token` and :func:`decode_token` to
identify the caller before any route dependency runs.
"""

from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    """Return the bcrypt hash of ``password``."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against its stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _encode(claims: dict, lifetime: timedelta, secret_key: str, algorithm: str) -> str:
    payload = {**claims, "exp": datetime.now(UTC) + lifetime}
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def create_access_token(
    subject: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 30,
) -> str:
    """Create a signed access token.

    Args:
        subject: Username the token identifies.
        role: The user's role at issue time.
        secret_key: Signing key.
        algorithm: JWT signing algorithm.
        expires_minutes: Lifetime in minutes.

    Returns:
        The encoded JWT.
    """
    claims = {"sub": subject, "role": role, "type": ACCESS_TOKEN_TYPE}
    return _encode(claims, timedelta(minutes=expires_minutes), secret_key, algorithm)


def create_refresh_token(
    subject: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_days: int = 7,
) -> str:
    """Create a signed refresh token for ``subject``."""
    claims = {"sub": subject, "type": REFRESH_TOKEN_TYPE}
    return _encode(claims, timedelta(days=expires_days), secret_key, algorithm)


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> dict:
    """Decode and validate a JWT.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is otherwise invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
