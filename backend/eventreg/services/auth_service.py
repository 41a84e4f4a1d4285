"""
Admin authentication against a single static credential.

The username and bcrypt hash come from the environment. A successful login
yields a signed, time-boxed JWT; there is no session table and no revocation,
so a token stays valid until it expires.
"""

import hmac

from eventreg.core import metrics
from eventreg.core.config import get_settings
from eventreg.core.errors import ConfigurationError, InvalidCredentials, InvalidOrExpiredToken
from eventreg.core.logging import get_logger
from eventreg.core.security import create_access_token, decode_access_token, verify_password
from eventreg.schemas.auth import TokenPayload

logger = get_logger(__name__)

ADMIN_ROLE = "admin"


async def authenticate_admin(username: str, password: str) -> str:
    """
    Check the credential pair and return a signed token.
    Raises InvalidCredentials without saying which half was wrong.
    """
    settings = get_settings()
    if not settings.ADMIN_PASSWORD_HASH:
        logger.error("admin_password_hash_missing", setting="ADMIN_PASSWORD_HASH")
        raise ConfigurationError("Admin credentials are not configured")

    username_ok = hmac.compare_digest(username.encode("utf-8"), settings.ADMIN_USERNAME.encode("utf-8"))
    # Always run the slow hash check so timing does not reveal a wrong username
    password_ok = verify_password(password, settings.ADMIN_PASSWORD_HASH)

    if not (username_ok and password_ok):
        metrics.login_attempts.labels(result="failure").inc()
        logger.warning("login_failed")
        raise InvalidCredentials()

    token = create_access_token(data={"username": username, "role": ADMIN_ROLE})
    metrics.login_attempts.labels(result="success").inc()
    logger.info("admin_logged_in", username=username)
    return token


def verify_admin_token(token: str) -> TokenPayload:
    """Validate signature, expiry and role. Raises InvalidOrExpiredToken."""
    payload = decode_access_token(token)
    username = payload.get("username")
    role = payload.get("role")
    if not username or role != ADMIN_ROLE:
        raise InvalidOrExpiredToken()
    return TokenPayload(username=username, role=role)
