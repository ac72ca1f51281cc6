"""
Authentication routes

Admin session login/logout. Login is brute-force limited with slowapi;
the session token travels in an HttpOnly cookie and is also returned in the
body for API clients that send it as a Bearer header.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.cookies import clear_session_cookie, set_session_cookie
from app.core.database import get_db
from app.core.rate_limit import limiter
from app.core.security import create_session_token
from app.api.deps import get_current_user
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.auth import AdminUserResponse, LoginRequest
from app.schemas.common import envelope
from app.services.audit_service import AuditService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Verify credentials and start a session."""
    audit = AuditService(db)
    user = await UserService(db).authenticate(credentials.email, credentials.password)

    if user is None:
        await audit.log(
            AuditAction.USER_LOGIN_FAILED,
            entity_type="user",
            request=request,
            metadata={"email": credentials.email},
            success=False,
        )
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    token = create_session_token({"sub": user.id, "role": user.role.value})
    set_session_cookie(response, token)

    await audit.log(AuditAction.USER_LOGIN, entity_type="user", entity_id=user.id, user=user, request=request)

    return envelope(
        {
            "user": AdminUserResponse.model_validate(user).to_wire(),
            "token": token,
        },
        message="Logged in successfully",
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Clear the session cookie. Bearer clients just discard the token."""
    clear_session_cookie(response)
    await AuditService(db).log(
        AuditAction.USER_LOGOUT, entity_type="user", entity_id=current_user.id,
        user=current_user, request=request,
    )
    return envelope(message="Logged out successfully")


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return envelope(AdminUserResponse.model_validate(current_user).to_wire())
