"""
Organization API endpoints.

POST   /organizations                                   - Create a new org
POST   /organizations/join                              - Request to join an org
POST   /organizations/accept-invitation                 - Accept an invitation token
GET    /organizations/{org_id}/members                  - List members
POST   /organizations/{org_id}/members/{member_id}/approve - Approve a join request
POST   /organizations/{org_id}/invite                   - Invite by email
GET    /organizations/{org_id}/invitations              - List live invitations
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from worklog.core.auth import OrgMember, get_current_user, require_admin, require_member
from worklog.core.database import get_session
from worklog.models.user import User
from worklog.services import organizations as org_service
from worklog_shared.schemas.organizations import (
    AcceptInvitationRequest,
    InvitationListResponse,
    InviteRequest,
    InviteResponse,
    JoinResponse,
    MemberListResponse,
    OrganizationRead,
    OrganizationResponse,
    OrgCreateRequest,
    OrgJoinRequest,
    SuccessResponse,
)

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no org_id in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.post("", response_model=OrganizationResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new org. The caller becomes its first admin."""
    org = await org_service.create_org(body.name, user, session)
    await session.commit()
    return OrganizationResponse(organization=OrganizationRead.model_validate(org))


@router_global.post("/join", response_model=JoinResponse)
async def join_org(
    body: OrgJoinRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await org_service.join_org(body.organization_id, user, session)
    await session.commit()
    return JoinResponse(success=True, requires_approval=True)


@router_global.post("/accept-invitation", response_model=OrganizationResponse)
async def accept_invitation(
    body: AcceptInvitationRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.accept_invitation(body.token, user, session)
    await session.commit()
    return OrganizationResponse(organization=OrganizationRead.model_validate(org))


# ---------------------------------------------------------------------------
# Org-scoped routes
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("/members", response_model=MemberListResponse)
async def list_members(
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Active members first, then pending requests."""
    members = await org_service.list_members(member.org_id, session)
    return MemberListResponse(members=members)


@router_scoped.post("/members/{member_id}/approve", response_model=SuccessResponse)
async def approve_member(
    member_id: uuid.UUID,
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await org_service.approve_member(admin.org_id, member_id, session)
    await session.commit()
    return SuccessResponse(success=True)


@router_scoped.post("/invite", response_model=InviteResponse, status_code=201)
async def invite_user(
    body: InviteRequest,
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitation = await org_service.invite_user(admin.org_id, body, admin.user, session)
    await session.commit()
    return InviteResponse(success=True, invitation_id=invitation.id)


@router_scoped.get("/invitations", response_model=InvitationListResponse)
async def list_invitations(
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitations = await org_service.list_invitations(admin.org_id, session)
    return InvitationListResponse(invitations=invitations)
