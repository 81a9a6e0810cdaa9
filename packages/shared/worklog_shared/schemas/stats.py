"""Monthly statistics shown on the admin view."""

from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel


class UserStats(BaseModel):
    user_id: UUID
    name: str
    email: str
    total_hours: float
    days_worked: int
    avg_hours_per_day: float


class ProjectStats(BaseModel):
    project_id: UUID
    name: str
    total_hours: float
    unique_users: int
    percentage: float


class StatsResponse(BaseModel):
    month: str  # YYYY-MM
    total_hours: float
    active_members: int
    avg_hours_per_day: float
    users: List[UserStats]
    projects: List[ProjectStats]
