"""FastAPI dependencies for bearer-token authentication.

Usage:
    @router.get("/profile")
    async def get_profile(user: User = Depends(verify_auth)):
        ...

    @router.get("/admin/stats")
    async def stats(admin: User = Depends(verify_admin)):
        ...
"""

from fastapi import Depends, Header, HTTPException, Request

from studenthub.errors import (
    ERROR_ADMIN_REQUIRED,
    ERROR_NO_TOKEN,
    ERROR_USER_NOT_FOUND,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.security import TokenError, decode_access_token
from studenthub.services.database import get_database
from studenthub.services.models import User

logger = get_logger(__name__)

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token of a `Bearer <token>` header or raise 401."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise HTTPException(status_code=401, detail=ERROR_NO_TOKEN)
    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(status_code=401, detail=ERROR_NO_TOKEN)
    return token


async def verify_auth(
    request: Request,
    authorization: str = Header(None, alias="Authorization"),
) -> User:
    """
    Verify the bearer JWT and load the user (without password hash).

    The user is also attached to `request.state.user`.
    """
    token = extract_bearer_token(authorization)

    try:
        user_id = decode_access_token(token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))

    db = get_database()
    user = await db.users.get_by_id(user_id)
    if not user:
        logger.info(f"Token for unknown user {sanitize_id_for_logging(user_id)}")
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)

    request.state.user = user
    return user


async def verify_admin(user: User = Depends(verify_auth)) -> User:
    """Require an authenticated user with the admin role."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail=ERROR_ADMIN_REQUIRED)
    return user
