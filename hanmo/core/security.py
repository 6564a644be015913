import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from hanmo.core.config import settings

# Argon2 as primary, bcrypt kept so older hashes still verify
pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    deprecated="auto",
)

ALGORITHM = "HS256"


def create_access_token(
    subject: str | Any, expires_delta: timedelta, additional_claims: dict | None = None
) -> str:
    """Create a signed JWT access token.

    Args:
        subject: The subject of the token (usually user ID)
        expires_delta: Token expiration time
        additional_claims: Additional claims to include in the token

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "exp": now + expires_delta,
        "sub": str(subject),
        "iat": now,
        "jti": secrets.token_urlsafe(16),
        "type": "access",
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """Decode a token, raising ``jwt.InvalidTokenError`` when it is not valid."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
