"""
Authentication endpoints.

- Email/Password login (the account is created on first login)
- Email lookup for the sign-in screen (account, suggestions, invitations)
- Session inspection and logout
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from worklog.core.auth import create_jwt, generate_csrf_token, get_current_user
from worklog.core.config import get_settings
from worklog.core.database import get_session
from worklog.core.middleware import CSRF_COOKIE, SESSION_COOKIE
from worklog.models.user import User
from worklog.services import users as user_service
from worklog_shared.schemas.auth import (
    CheckEmailRequest,
    CheckEmailResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    UserRead,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Sign in (or sign up) and receive a session plus the user's organizations."""
    user = await user_service.login(body, session)
    organizations = await user_service.list_user_orgs(user.id, session)
    await session.commit()

    token, _jti = create_jwt(user_id=user.id, email=user.email)
    _set_session_cookies(response, token, generate_csrf_token())

    return LoginResponse(
        user=UserRead.model_validate(user),
        organizations=organizations,
        needs_organization_selection=len(organizations) == 0,
        access_token=token,
    )


@router.post("/check-email", response_model=CheckEmailResponse)
async def check_email(
    body: CheckEmailRequest,
    session: AsyncSession = Depends(get_session),
):
    """Does an account exist, which orgs share the domain, which invitations wait."""
    return await user_service.check_email(body.email, session)


@router.get("/me", response_model=MeResponse)
async def me(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """The signed-in user, their organizations and invitations waiting for them."""
    organizations = await user_service.list_user_orgs(user.id, session)
    invitations = await user_service.list_claimable_invitations(user, session)
    return MeResponse(
        user=UserRead.model_validate(user),
        organizations=organizations,
        pending_invitations=invitations,
    )


@router.post("/logout")
async def logout(response: Response):
    """Clear the session cookies."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}
