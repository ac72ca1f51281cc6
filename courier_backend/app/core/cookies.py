"""
Cookie Management Utilities

Centralized cookie handling for the admin session token.
"""
from typing import Optional
from fastapi import Response
from starlette.requests import Request

from app.core.config import settings


SESSION_COOKIE = "courier_session"


def get_cookie_domain() -> Optional[str]:
    """Configured cookie domain, or None for a host-only cookie."""
    return settings.COOKIE_DOMAIN or None


def set_session_cookie(response: Response, token: str) -> None:
    """
    Set the session cookie on response.

    HttpOnly so the token is never readable by page scripts.
    """
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        domain=get_cookie_domain(),
        max_age=settings.SESSION_EXPIRE_HOURS * 3600,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE,
        domain=get_cookie_domain(),
        path="/",
    )


def get_session_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE)
