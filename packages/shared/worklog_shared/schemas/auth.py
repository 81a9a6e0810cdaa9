"""Authentication and identity schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import MembershipStatus, Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Sign in, creating the account on first login."""
    email: EmailStr
    name: str = Field(min_length=1, max_length=200)
    avatar_url: Optional[str] = None
    password: str = Field(min_length=1)


class CheckEmailRequest(BaseModel):
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserRead(BaseModel):
    id: UUID
    email: str
    name: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOrganization(BaseModel):
    """An organization as seen by one of its members."""
    id: UUID
    name: str
    slug: str
    role: Role
    status: MembershipStatus


class LoginResponse(BaseModel):
    user: UserRead
    organizations: List[UserOrganization]
    needs_organization_selection: bool
    access_token: str
    token_type: str = "bearer"


class OrganizationSuggestion(BaseModel):
    id: UUID
    name: str
    slug: str
    member_count: int


class PendingInvitation(BaseModel):
    """Invitation as shown before sign-in; carries no token."""
    id: UUID
    organization_name: str
    organization_slug: str
    invited_by_name: str


class ClaimableInvitation(PendingInvitation):
    """Invitation addressed to the signed-in user, with the token to accept it."""
    role: Role
    expires_at: datetime
    token: str


class MeResponse(BaseModel):
    user: UserRead
    organizations: List[UserOrganization]
    pending_invitations: List[ClaimableInvitation] = []


class CheckEmailResponse(BaseModel):
    has_account: bool
    suggested_organizations: List[OrganizationSuggestion]
    pending_invitations: List[PendingInvitation]
