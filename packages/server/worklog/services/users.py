"""
User service - login (with sign-up on first login), email lookup, and the
organization list shown after authentication.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from worklog.core.auth import hash_password, verify_password
from worklog.core.config import get_settings
from worklog.core.errors import AuthenticationError, ValidationError
from worklog.models.invitation import Invitation
from worklog.models.membership import OrganizationMember
from worklog.models.organization import Organization
from worklog.models.user import User
from worklog_shared.schemas.auth import (
    CheckEmailResponse,
    ClaimableInvitation,
    LoginRequest,
    OrganizationSuggestion,
    PendingInvitation,
    UserOrganization,
)
from worklog_shared.schemas.common import MembershipStatus

log = structlog.get_logger()
settings = get_settings()

MAX_SUGGESTED_ORGS = 5
MIN_DOMAIN_MEMBERS = 2


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def login(req: LoginRequest, session: AsyncSession) -> User:
    """Authenticate by email/password, creating the user on first login.

    Name and avatar are overwritten on every successful login.
    """
    email = normalize_email(req.email)
    user = await get_user_by_email(email, session)

    if user and user.password_hash:
        if not verify_password(req.password, user.password_hash):
            log.warning("auth.login_failure", email=email, reason="bad_password")
            raise AuthenticationError("Invalid email or password")
    elif len(req.password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters"
        )

    if not user:
        user = User(
            email=email,
            name=req.name,
            avatar_url=req.avatar_url,
            password_hash=hash_password(req.password),
        )
        session.add(user)
        await session.flush()
        log.info("user.registered", user_id=str(user.id), email=email)
    else:
        if not user.password_hash:
            user.password_hash = hash_password(req.password)
        user.name = req.name
        user.avatar_url = req.avatar_url
        user.updated_at = datetime.now(timezone.utc)
        session.add(user)
        await session.flush()

    log.info("auth.login_success", user_id=str(user.id), email=email)
    return user


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[UserOrganization]:
    """All organizations a user has a membership in, newest membership first."""
    result = await session.execute(
        select(Organization, OrganizationMember.role, OrganizationMember.status)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(OrganizationMember.created_at.desc())
    )
    return [
        UserOrganization(
            id=org.id,
            name=org.name,
            slug=org.slug,
            role=role,
            status=status,
        )
        for org, role, status in result.all()
    ]


async def _live_invitations(email: str, session: AsyncSession):
    """Unaccepted, unexpired invitations for an email, newest first."""
    inviter = aliased(User)
    result = await session.execute(
        select(Invitation, Organization.name, Organization.slug, inviter.name)
        .join(Organization, Organization.id == Invitation.organization_id)
        .join(inviter, inviter.id == Invitation.invited_by)
        .where(
            Invitation.email == email,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > datetime.now(timezone.utc),
        )
        .order_by(Invitation.created_at.desc())
    )
    return result.all()


async def list_claimable_invitations(
    user: User, session: AsyncSession
) -> list[ClaimableInvitation]:
    """Live invitations addressed to the signed-in user's own email, with tokens."""
    return [
        ClaimableInvitation(
            id=inv.id,
            organization_name=org_name,
            organization_slug=org_slug,
            invited_by_name=inviter_name,
            role=inv.role,
            expires_at=inv.expires_at,
            token=inv.token,
        )
        for inv, org_name, org_slug, inviter_name in await _live_invitations(
            normalize_email(user.email), session
        )
    ]


async def check_email(email: str, session: AsyncSession) -> CheckEmailResponse:
    """Report account existence, same-domain organizations and live invitations.

    Callers are anonymous, so invitations are listed without their tokens.
    """
    email = normalize_email(email)
    user = await get_user_by_email(email, session)

    domain = email.split("@", 1)[1]
    member_count = func.count(OrganizationMember.id).label("member_count")
    suggested = await session.execute(
        select(Organization.id, Organization.name, Organization.slug, member_count)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .join(User, User.id == OrganizationMember.user_id)
        .where(
            User.email.endswith(f"@{domain}", autoescape=True),
            OrganizationMember.status == MembershipStatus.ACTIVE.value,
        )
        .group_by(Organization.id, Organization.name, Organization.slug)
        .having(func.count(OrganizationMember.id) >= MIN_DOMAIN_MEMBERS)
        .order_by(member_count.desc())
        .limit(MAX_SUGGESTED_ORGS)
    )

    return CheckEmailResponse(
        has_account=user is not None,
        suggested_organizations=[
            OrganizationSuggestion(
                id=row.id, name=row.name, slug=row.slug, member_count=row.member_count
            )
            for row in suggested.all()
        ],
        pending_invitations=[
            PendingInvitation(
                id=inv.id,
                organization_name=org_name,
                organization_slug=org_slug,
                invited_by_name=inviter_name,
            )
            for inv, org_name, org_slug, inviter_name in await _live_invitations(email, session)
        ],
    )
