"""Organization membership: join entity carrying role and approval status."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class OrganizationMember(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="member")  # admin | member
    status: str = Field(nullable=False, default="pending")  # pending | active | inactive
    invited_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    invited_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    joined_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
