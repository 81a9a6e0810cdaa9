"""
Organization-related Pydantic schemas.

Covers: organization creation, join requests, invitations and the
membership listing used by the admin view.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import MembershipStatus, Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, description="Organization display name")


class OrgJoinRequest(BaseModel):
    organization_id: uuid.UUID


class InviteRequest(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER


class AcceptInvitationRequest(BaseModel):
    token: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrganizationRead(BaseModel):
    id: uuid.UUID
    name: str
    slug: str

    model_config = {"from_attributes": True}


class OrganizationResponse(BaseModel):
    organization: OrganizationRead


class JoinResponse(BaseModel):
    success: bool
    requires_approval: bool


class SuccessResponse(BaseModel):
    success: bool


class InviteResponse(BaseModel):
    success: bool
    invitation_id: uuid.UUID


class MemberRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: Role
    status: MembershipStatus
    joined_at: Optional[datetime] = None
    invited_by_name: Optional[str] = None


class MemberListResponse(BaseModel):
    members: list[MemberRead]


class InvitationRead(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    invited_by_name: Optional[str] = None
    expires_at: datetime
    created_at: datetime


class InvitationListResponse(BaseModel):
    invitations: list[InvitationRead]
