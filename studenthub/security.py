"""Password hashing (bcrypt) and access tokens (PyJWT)."""
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from studenthub import config
from studenthub.errors import ERROR_INVALID_TOKEN, ERROR_TOKEN_EXPIRED
from studenthub.logging import get_logger

logger = get_logger(__name__)

if config.is_default_jwt_secret():
    logger.warning("JWT_SECRET is not set, using the development default secret")


class TokenError(Exception):
    """Raised when an access token cannot be trusted."""


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def create_access_token(user_id: str, expires_days: int | None = None) -> str:
    """Sign a token carrying the `user_id` claim."""
    days = config.JWT_EXPIRES_DAYS if expires_days is None else expires_days
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "iat": now,
        "exp": now + timedelta(days=days),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify signature and expiry and return the user id.

    Raises:
        TokenError: expired, tampered, or missing the `user_id` claim
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenError(ERROR_TOKEN_EXPIRED) from e
    except jwt.InvalidTokenError as e:
        raise TokenError(ERROR_INVALID_TOKEN) from e

    user_id = payload.get("user_id")
    if not user_id:
        raise TokenError(ERROR_INVALID_TOKEN)
    return str(user_id)
