"""Time entry model: hours logged by one user against one project."""

import datetime as dt
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class TimeEntry(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "time_entries"
    __table_args__ = (
        sa.CheckConstraint("hours > 0 AND hours <= 24", name="ck_time_entries_hours_range"),
        sa.Index("ix_time_entries_org_date", "organization_id", "date"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    date: dt.date = Field(nullable=False)
    task: str = Field(nullable=False)
    hours: float = Field(nullable=False, sa_type=sa.Float)
