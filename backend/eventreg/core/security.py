"""
Password hashing (bcrypt) and signed session tokens (JWT, HS256).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from eventreg.core.config import get_settings
from eventreg.core.errors import ConfigurationError, InvalidOrExpiredToken

# bcrypt only looks at the first 72 bytes; newer releases refuse anything longer
BCRYPT_MAX_BYTES = 72

# Stand-in hash so the bcrypt comparison always runs, whichever credential is wrong
_DUMMY_HASH = bcrypt.hashpw(b"not-the-admin-password", bcrypt.gensalt(rounds=10))


def hash_password(password: str, rounds: int = 10) -> str:
    secret = password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """
    Slow salted comparison. Malformed hashes and passwords longer than bcrypt
    accepts compare as a mismatch, after the same amount of hashing work.
    """
    secret = password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_BYTES:
        bcrypt.checkpw(secret[:BCRYPT_MAX_BYTES], _DUMMY_HASH)
        return False

    candidate = hashed.encode("utf-8") if hashed else _DUMMY_HASH
    try:
        matched = bcrypt.checkpw(secret, candidate)
    except ValueError:
        bcrypt.checkpw(secret, _DUMMY_HASH)
        return False
    return matched and bool(hashed)


def _signing_secret() -> str:
    secret = get_settings().JWT_SECRET
    if not secret:
        raise ConfigurationError("JWT_SECRET is not configured")
    return secret


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    secret = _signing_secret()

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.JWT_EXPIRES_HOURS))
    to_encode = {**data, "iat": now, "exp": expire}
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Validate signature and expiry. Raises InvalidOrExpiredToken."""
    settings = get_settings()
    secret = _signing_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as e:
        raise InvalidOrExpiredToken() from e
