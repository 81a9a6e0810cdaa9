"""
Time entry service layer.

Handles:
- Hours validation on create and update
- Org-scoped listing with optional AND-composed filters
- Owner scoping on mutation (admins may touch any entry in their org)
- CSV rendering for exports

Every lookup is keyed by (entry id, organization id); an id that exists in a
different organization is reported exactly like one that does not exist.
"""

from __future__ import annotations

import csv
import io
import uuid
from datetime import datetime, timezone
from typing import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from worklog.core.auth import OrgMember
from worklog.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from worklog.models.project import Project
from worklog.models.time_entry import TimeEntry
from worklog.models.user import User
from worklog.services.projects import get_project_or_404
from worklog_shared.schemas.time_entries import (
    TimeEntryCreate,
    TimeEntryFilters,
    TimeEntryRead,
    TimeEntryUpdate,
    validate_hours,
)

log = structlog.get_logger()

EXPORT_COLUMNS = ["date", "project", "user", "email", "task", "hours"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_hours(hours: float) -> None:
    is_valid, error_msg = validate_hours(hours)
    if not is_valid:
        raise ValidationError(error_msg)


def _entries_query():
    return (
        select(TimeEntry, Project.name, User.name, User.email)
        .join(Project, Project.id == TimeEntry.project_id)
        .join(User, User.id == TimeEntry.user_id)
    )


def _to_read(row) -> TimeEntryRead:
    entry, project_name, user_name, user_email = row
    return TimeEntryRead(
        id=entry.id,
        project_id=entry.project_id,
        project_name=project_name,
        user_id=entry.user_id,
        user_name=user_name,
        user_email=user_email,
        date=entry.date,
        task=entry.task,
        hours=entry.hours,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


async def _read_entry(session: AsyncSession, entry_id: uuid.UUID) -> TimeEntryRead:
    result = await session.execute(_entries_query().where(TimeEntry.id == entry_id))
    return _to_read(result.one())


async def get_entry_for_mutation(
    session: AsyncSession, entry_id: uuid.UUID, member: OrgMember
) -> TimeEntry:
    """Fetch an entry the caller may change; 404 across tenants, 403 across owners."""
    entry = await session.get(TimeEntry, entry_id)
    if not entry or entry.organization_id != member.org_id:
        raise NotFoundError("Time entry not found")
    if entry.user_id != member.user_id and not member.is_admin:
        raise PermissionDeniedError("You can only modify your own time entries")
    return entry


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_time_entry(
    session: AsyncSession,
    entry_in: TimeEntryCreate,
    member: OrgMember,
) -> TimeEntryRead:
    _check_hours(entry_in.hours)
    if not entry_in.task.strip():
        raise ValidationError("Task description is required")

    project = await get_project_or_404(session, entry_in.project_id, member.org_id)
    if project.is_archived:
        raise ValidationError("Cannot log time against an archived project")

    entry = TimeEntry(
        organization_id=member.org_id,
        project_id=project.id,
        user_id=member.user_id,
        date=entry_in.date,
        task=entry_in.task.strip(),
        hours=entry_in.hours,
    )
    session.add(entry)
    await session.flush()

    log.info(
        "time_entry.created",
        org_id=str(member.org_id),
        entry_id=str(entry.id),
        user_id=str(member.user_id),
        hours=entry.hours,
    )
    return TimeEntryRead(
        id=entry.id,
        project_id=entry.project_id,
        project_name=project.name,
        user_id=entry.user_id,
        user_name=member.user.name,
        user_email=member.user.email,
        date=entry.date,
        task=entry.task,
        hours=entry.hours,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


async def list_time_entries(
    session: AsyncSession,
    org_id: uuid.UUID,
    filters: TimeEntryFilters,
) -> list[TimeEntryRead]:
    """Org-scoped entries; each supplied filter narrows the result further."""
    stmt = _entries_query().where(TimeEntry.organization_id == org_id)

    if filters.project_id:
        stmt = stmt.where(TimeEntry.project_id == filters.project_id)
    if filters.user_id:
        stmt = stmt.where(TimeEntry.user_id == filters.user_id)
    if filters.start_date:
        stmt = stmt.where(TimeEntry.date >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(TimeEntry.date <= filters.end_date)

    stmt = stmt.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc())
    result = await session.execute(stmt)
    return [_to_read(row) for row in result.all()]


async def update_time_entry(
    session: AsyncSession,
    entry_id: uuid.UUID,
    entry_in: TimeEntryUpdate,
    member: OrgMember,
) -> TimeEntryRead:
    update_data = entry_in.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise ValidationError("No fields to update")
    if "hours" in update_data:
        _check_hours(update_data["hours"])
    if "task" in update_data:
        update_data["task"] = update_data["task"].strip()
        if not update_data["task"]:
            raise ValidationError("Task description is required")

    entry = await get_entry_for_mutation(session, entry_id, member)
    for key, value in update_data.items():
        setattr(entry, key, value)
    entry.updated_at = datetime.now(timezone.utc)
    session.add(entry)
    await session.flush()

    log.info(
        "time_entry.updated",
        org_id=str(member.org_id),
        entry_id=str(entry.id),
        fields=sorted(update_data),
    )
    return await _read_entry(session, entry.id)


async def delete_time_entry(
    session: AsyncSession,
    entry_id: uuid.UUID,
    member: OrgMember,
) -> None:
    """Delete an entry. A missing or foreign entry is a 404, never a silent success."""
    entry = await get_entry_for_mutation(session, entry_id, member)
    await session.delete(entry)
    await session.flush()
    log.info("time_entry.deleted", org_id=str(member.org_id), entry_id=str(entry_id))


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def render_csv(entries: Sequence[TimeEntryRead]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_COLUMNS)
    for e in entries:
        writer.writerow(
            [e.date.isoformat(), e.project_name, e.user_name, e.user_email, e.task, e.hours]
        )
    return buf.getvalue()
