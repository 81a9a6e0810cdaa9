"""
Authentication and Authorization for Worklog.

Supports:
- Email/Password login with bcrypt hashes
- JWT sessions carried in an HttpOnly cookie or an ``Authorization: Bearer`` header
- Org-scoping: the acting identity must hold an active membership in the
  organization named by the path
- Role-based authorization dependencies

The acting user is always derived from the verified token, never from a
request body field.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from worklog.core.config import get_settings
from worklog.core.database import get_session
from worklog.core.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from worklog.core.middleware import SESSION_COOKIE
from worklog.models.membership import OrganizationMember
from worklog.models.organization import Organization
from worklog.models.user import User
from worklog_shared.schemas.common import MembershipStatus, Role

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class OrgMember:
    """Container for an authenticated user + their membership in one org."""

    def __init__(self, user: User, org: Organization, membership: OrganizationMember):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.id
        self.org_id = org.id
        self.role = membership.role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Main authentication dependency: resolve the user behind the session token."""
    token = _extract_token(request, authorization)
    if not token:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise AuthenticationError("Invalid or expired session")

    user = await session.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")

    request.state.user_id = user.id
    return user


async def get_org_member(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgMember:
    """Resolve the org from the path and verify the caller is an active member."""
    org = await session.get(Organization, org_id)
    if not org:
        raise NotFoundError("Organization not found")

    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == org.id,
            OrganizationMember.user_id == user.id,
        )
    )
    membership = result.scalar_one_or_none()
    if not membership or membership.status != MembershipStatus.ACTIVE.value:
        log.warning("auth.org_access_denied", user_id=str(user.id), org_id=str(org.id))
        raise PermissionDeniedError("You are not an active member of this organization")

    return OrgMember(user=user, org=org, membership=membership)


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_member(
    member: OrgMember = Depends(get_org_member),
) -> OrgMember:
    """Any active org member can access this endpoint."""
    return member


async def require_admin(
    member: OrgMember = Depends(get_org_member),
) -> OrgMember:
    """Requires the admin role in the target organization."""
    if not member.is_admin:
        raise PermissionDeniedError("Administrator access required")
    return member
