"""
Organization service - business logic for the organization and membership
lifecycle.

Membership status moves (none) → pending → active on a join request that an
admin approves, or (none) → active when an invitation is accepted. Every
write here runs inside the request transaction, so organization creation and
invitation acceptance are all-or-nothing.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta

import structlog
from sqlalchemy import case, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from worklog.core.config import get_settings
from worklog.core.errors import ConflictError, NotFoundError, ValidationError
from worklog.models.base import utcnow
from worklog.models.invitation import Invitation
from worklog.models.membership import OrganizationMember
from worklog.models.organization import Organization
from worklog.models.project import Project
from worklog.models.user import User
from worklog.services.users import normalize_email
from worklog_shared.schemas.common import (
    DEFAULT_PROJECT_DESCRIPTION,
    DEFAULT_PROJECT_NAME,
    MembershipStatus,
    Role,
    slugify,
)
from worklog_shared.schemas.organizations import (
    InvitationRead,
    InviteRequest,
    MemberRead,
)

log = structlog.get_logger()
settings = get_settings()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _dialect_insert(session: AsyncSession):
    """INSERT construct supporting ON CONFLICT for the bound dialect."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def _upsert_membership(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    values: dict,
    on_conflict: dict,
) -> None:
    """Insert a membership, or update the existing (org, user) row in place."""
    insert = _dialect_insert(session)
    now = utcnow()
    stmt = insert(OrganizationMember).values(
        id=uuid.uuid4(),
        organization_id=organization_id,
        user_id=user_id,
        created_at=now,
        updated_at=now,
        **values,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["organization_id", "user_id"],
        set_={**on_conflict, "updated_at": now},
    )
    await session.execute(stmt)


async def get_org_or_404(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    org = await session.get(Organization, org_id)
    if not org:
        raise NotFoundError("Organization not found")
    return org


# ---------------------------------------------------------------------------
# Organization creation & join requests
# ---------------------------------------------------------------------------

async def create_org(
    name: str, creator: User, session: AsyncSession
) -> Organization:
    """Create an org, make the creator an active admin, add a "General" project."""
    slug = slugify(name)
    if not slug:
        raise ValidationError("Organization name must contain letters or digits")

    existing = await session.execute(
        select(Organization.id).where(Organization.slug == slug)
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Organization name already taken")

    org = Organization(name=name.strip(), slug=slug)
    session.add(org)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("Organization name already taken")

    now = utcnow()
    session.add(
        OrganizationMember(
            organization_id=org.id,
            user_id=creator.id,
            role=Role.ADMIN.value,
            status=MembershipStatus.ACTIVE.value,
            joined_at=now,
        )
    )
    session.add(
        Project(
            organization_id=org.id,
            name=DEFAULT_PROJECT_NAME,
            description=DEFAULT_PROJECT_DESCRIPTION,
            created_by=creator.id,
        )
    )
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=slug, creator=str(creator.id))
    return org


async def join_org(
    org_id: uuid.UUID, user: User, session: AsyncSession
) -> None:
    """Request membership; an admin has to approve it."""
    await get_org_or_404(org_id, session)

    result = await session.execute(
        select(OrganizationMember.status).where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.user_id == user.id,
        )
    )
    status = result.scalar_one_or_none()
    if status == MembershipStatus.ACTIVE.value:
        raise ConflictError("You are already a member of this organization")
    if status == MembershipStatus.PENDING.value:
        raise ConflictError("Your request to join is already pending approval")

    await _upsert_membership(
        session,
        organization_id=org_id,
        user_id=user.id,
        values={"role": Role.MEMBER.value, "status": MembershipStatus.PENDING.value},
        on_conflict={"status": MembershipStatus.PENDING.value},
    )
    log.info("org.join_requested", org_id=str(org_id), user_id=str(user.id))


async def approve_member(
    org_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> None:
    """Flip a pending membership to active. Raises 404 if nothing was pending."""
    now = utcnow()
    result = await session.execute(
        update(OrganizationMember)
        .where(
            OrganizationMember.id == member_id,
            OrganizationMember.organization_id == org_id,
            OrganizationMember.status == MembershipStatus.PENDING.value,
        )
        .values(status=MembershipStatus.ACTIVE.value, joined_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Pending membership not found")
    log.info("org.member_approved", org_id=str(org_id), member_id=str(member_id))


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

async def invite_user(
    org_id: uuid.UUID,
    req: InviteRequest,
    inviter: User,
    session: AsyncSession,
) -> Invitation:
    """Create a single-use invitation token valid for the configured number of days.

    There is at most one invitation row per (organization, email). Re-inviting
    replaces an expired or accepted row in place; a live one is a conflict.
    """
    email = normalize_email(req.email)

    existing_member = await session.execute(
        select(OrganizationMember.id)
        .join(User, User.id == OrganizationMember.user_id)
        .where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.status == MembershipStatus.ACTIVE.value,
            User.email == email,
        )
    )
    if existing_member.scalar_one_or_none():
        raise ConflictError("User is already a member of this organization")

    now = utcnow()
    fresh = {
        "role": req.role.value,
        "invited_by": inviter.id,
        "token": secrets.token_urlsafe(32),
        "expires_at": now + timedelta(days=settings.invitation_expiry_days),
        "accepted_at": None,
        "created_at": now,
    }
    invitations = Invitation.__table__
    insert = _dialect_insert(session)
    stmt = (
        insert(Invitation)
        .values(id=uuid.uuid4(), organization_id=org_id, email=email, **fresh)
        .on_conflict_do_update(
            index_elements=["organization_id", "email"],
            set_=fresh,
            # only a dead row may be replaced
            where=invitations.c.accepted_at.is_not(None) | (invitations.c.expires_at <= now),
        )
        .returning(Invitation.id)
    )
    try:
        result = await session.execute(stmt)
    except IntegrityError:
        raise ConflictError("User already has a pending invitation")

    invitation_id = result.scalar_one_or_none()
    if invitation_id is None:
        raise ConflictError("User already has a pending invitation")

    invitation = await session.get(Invitation, invitation_id, populate_existing=True)
    log.info(
        "invitation.created",
        org_id=str(org_id),
        invitation_id=str(invitation.id),
        role=invitation.role,
        invited_by=str(inviter.id),
    )
    return invitation


async def accept_invitation(
    token: str, user: User, session: AsyncSession
) -> Organization:
    """Consume an invitation and make the caller an active member.

    The invitation is claimed with one conditional UPDATE, so of two concurrent
    calls on the same token only one can match the row.
    """
    now = utcnow()
    result = await session.execute(
        update(Invitation)
        .where(
            Invitation.token == token,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > now,
        )
        .values(accepted_at=now)
        .returning(
            Invitation.id,
            Invitation.organization_id,
            Invitation.email,
            Invitation.role,
            Invitation.invited_by,
            Invitation.created_at,
        )
        .execution_options(synchronize_session=False)
    )
    claimed = result.one_or_none()
    if claimed is None:
        raise ValidationError("Invalid or expired invitation")

    if normalize_email(user.email) != normalize_email(claimed.email):
        log.warning(
            "invitation.email_mismatch",
            invitation_id=str(claimed.id),
            user_id=str(user.id),
        )
        raise ValidationError("Invitation email does not match your account")

    await _upsert_membership(
        session,
        organization_id=claimed.organization_id,
        user_id=user.id,
        values={
            "role": claimed.role,
            "status": MembershipStatus.ACTIVE.value,
            "invited_by": claimed.invited_by,
            "invited_at": claimed.created_at,
            "joined_at": now,
        },
        on_conflict={
            "role": claimed.role,
            "status": MembershipStatus.ACTIVE.value,
            "invited_by": claimed.invited_by,
            "invited_at": claimed.created_at,
            "joined_at": now,
        },
    )

    log.info(
        "invitation.accepted",
        invitation_id=str(claimed.id),
        org_id=str(claimed.organization_id),
        user_id=str(user.id),
    )
    return await get_org_or_404(claimed.organization_id, session)


async def list_invitations(
    org_id: uuid.UUID, session: AsyncSession
) -> list[InvitationRead]:
    """Live (unaccepted, unexpired) invitations, newest first."""
    inviter = aliased(User)
    result = await session.execute(
        select(Invitation, inviter.name)
        .outerjoin(inviter, inviter.id == Invitation.invited_by)
        .where(
            Invitation.organization_id == org_id,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > utcnow(),
        )
        .order_by(Invitation.created_at.desc())
    )
    return [
        InvitationRead(
            id=inv.id,
            email=inv.email,
            role=inv.role,
            invited_by_name=inviter_name,
            expires_at=inv.expires_at,
            created_at=inv.created_at,
        )
        for inv, inviter_name in result.all()
    ]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

async def list_members(
    org_id: uuid.UUID, session: AsyncSession
) -> list[MemberRead]:
    """Members with identity and inviter name; active, then pending, then the rest."""
    inviter = aliased(User)
    status_rank = case(
        (OrganizationMember.status == MembershipStatus.ACTIVE.value, 1),
        (OrganizationMember.status == MembershipStatus.PENDING.value, 2),
        else_=3,
    )
    result = await session.execute(
        select(OrganizationMember, User, inviter.name)
        .join(User, User.id == OrganizationMember.user_id)
        .outerjoin(inviter, inviter.id == OrganizationMember.invited_by)
        .where(OrganizationMember.organization_id == org_id)
        .order_by(status_rank, OrganizationMember.created_at.asc())
    )
    return [
        MemberRead(
            id=m.id,
            user_id=u.id,
            email=u.email,
            name=u.name,
            avatar_url=u.avatar_url,
            role=m.role,
            status=m.status,
            joined_at=m.joined_at,
            invited_by_name=inviter_name,
        )
        for m, u, inviter_name in result.all()
    ]
