"""
Monthly statistics for the admin view: totals per member and per project.
"""

from __future__ import annotations

import datetime as dt
import re
import uuid
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from worklog.core.errors import ValidationError
from worklog.models.membership import OrganizationMember
from worklog.models.project import Project
from worklog.models.time_entry import TimeEntry
from worklog.models.user import User
from worklog_shared.schemas.common import MembershipStatus
from worklog_shared.schemas.stats import ProjectStats, StatsResponse, UserStats

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def month_bounds(month: Optional[str], today: Optional[dt.date] = None) -> tuple[dt.date, dt.date]:
    """Return [first day, first day of next month) for a YYYY-MM string."""
    if month is None:
        today = today or dt.datetime.now(dt.timezone.utc).date()
        start = today.replace(day=1)
    else:
        match = _MONTH_RE.match(month)
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise ValidationError("Month must be in YYYY-MM format")
        start = dt.date(int(match.group(1)), int(match.group(2)), 1)

    if start.month == 12:
        end = dt.date(start.year + 1, 1, 1)
    else:
        end = dt.date(start.year, start.month + 1, 1)
    return start, end


async def monthly_stats(
    session: AsyncSession, org_id: uuid.UUID, month: Optional[str] = None
) -> StatsResponse:
    start, end = month_bounds(month)
    in_month = (
        TimeEntry.organization_id == org_id,
        TimeEntry.date >= start,
        TimeEntry.date < end,
    )

    per_user = await session.execute(
        select(
            TimeEntry.user_id,
            func.sum(TimeEntry.hours).label("hours"),
            func.count(func.distinct(TimeEntry.date)).label("days"),
        )
        .where(*in_month)
        .group_by(TimeEntry.user_id)
    )
    user_totals = {row.user_id: (float(row.hours or 0), row.days) for row in per_user.all()}

    per_project = await session.execute(
        select(
            TimeEntry.project_id,
            func.sum(TimeEntry.hours).label("hours"),
            func.count(func.distinct(TimeEntry.user_id)).label("users"),
        )
        .where(*in_month)
        .group_by(TimeEntry.project_id)
    )
    project_totals = {
        row.project_id: (float(row.hours or 0), row.users) for row in per_project.all()
    }

    total_hours = sum(hours for hours, _ in user_totals.values())

    members = await session.execute(
        select(User.id, User.name, User.email)
        .join(OrganizationMember, OrganizationMember.user_id == User.id)
        .where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.status == MembershipStatus.ACTIVE.value,
        )
    )
    users = []
    for user_id, name, email in members.all():
        hours, days = user_totals.get(user_id, (0.0, 0))
        users.append(
            UserStats(
                user_id=user_id,
                name=name,
                email=email,
                total_hours=round(hours, 2),
                days_worked=days,
                avg_hours_per_day=round(hours / days, 2) if days else 0.0,
            )
        )
    users.sort(key=lambda u: u.total_hours, reverse=True)

    projects_result = await session.execute(
        select(Project.id, Project.name).where(Project.organization_id == org_id)
    )
    projects = []
    for project_id, name in projects_result.all():
        hours, unique_users = project_totals.get(project_id, (0.0, 0))
        projects.append(
            ProjectStats(
                project_id=project_id,
                name=name,
                total_hours=round(hours, 2),
                unique_users=unique_users,
                percentage=round(hours / total_hours * 100, 1) if total_hours else 0.0,
            )
        )
    projects.sort(key=lambda p: p.total_hours, reverse=True)

    contributors = [u for u in users if u.total_hours > 0]
    avg_per_day = (
        sum(u.avg_hours_per_day for u in contributors) / len(contributors)
        if contributors
        else 0.0
    )

    return StatsResponse(
        month=start.strftime("%Y-%m"),
        total_hours=round(total_hours, 2),
        active_members=len(contributors),
        avg_hours_per_day=round(avg_per_day, 2),
        users=users,
        projects=projects,
    )
