"""
API dependencies

Session auth accepts the HttpOnly cookie (admin web app) or a Bearer
header (scripts, API clients). Both carry the same signed session token.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.security import decode_token
from app.core.cookies import get_session_token_from_cookie
from app.models.user import User
from app.services.geocoding import get_geocoder  # noqa: F401  re-exported for routes
from app.services.notifications import get_notifier  # noqa: F401  re-exported for routes
from app.services.storage import get_storage_service  # noqa: F401  re-exported for routes

UNAUTHORIZED_MESSAGE = "Unauthorized - Please log in"

# Optional bearer - doesn't fail if no Authorization header
security = HTTPBearer(auto_error=False)


def get_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Optional[str]:
    """
    Extract session token from request.

    Priority:
    1. Authorization header (Bearer token)
    2. HttpOnly cookie
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    return get_session_token_from_cookie(request)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    token = get_token_from_request(request, credentials)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE
        )

    payload = decode_token(token)

    if not payload or payload.get("type") != "session":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE
        )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE
        )

    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Require admin user"""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
