"""
Project service: creation, listing and archiving within an organization.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from worklog.core.errors import NotFoundError, ValidationError
from worklog.models.project import Project
from worklog.models.user import User
from worklog_shared.schemas.projects import ProjectCreate, ProjectRead, ProjectUpdate

log = structlog.get_logger()


def _to_read(project: Project, creator_name: str) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        name=project.name,
        description=project.description,
        is_archived=project.is_archived,
        created_by=creator_name,
        created_at=project.created_at,
    )


async def get_project_or_404(
    session: AsyncSession, project_id: uuid.UUID, org_id: uuid.UUID
) -> Project:
    project = await session.get(Project, project_id)
    if not project or project.organization_id != org_id:
        raise NotFoundError("Project not found")
    return project


async def _creator_name(session: AsyncSession, user_id: uuid.UUID) -> str:
    creator = await session.get(User, user_id)
    return creator.name if creator else ""


async def create_project(
    session: AsyncSession,
    project_in: ProjectCreate,
    org_id: uuid.UUID,
    creator: User,
) -> ProjectRead:
    project = Project(
        organization_id=org_id,
        name=project_in.name.strip(),
        description=(project_in.description or "").strip() or None,
        created_by=creator.id,
    )
    session.add(project)
    await session.flush()

    log.info("project.created", org_id=str(org_id), project_id=str(project.id))
    return _to_read(project, creator.name)


async def list_projects(
    session: AsyncSession, org_id: uuid.UUID
) -> list[ProjectRead]:
    """Active projects before archived ones, newest first within each group."""
    result = await session.execute(
        select(Project, User.name)
        .join(User, User.id == Project.created_by)
        .where(Project.organization_id == org_id)
        .order_by(Project.is_archived.asc(), Project.created_at.desc())
    )
    return [_to_read(project, name) for project, name in result.all()]


async def update_project(
    session: AsyncSession,
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    org_id: uuid.UUID,
) -> ProjectRead:
    update_data = project_in.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise ValidationError("No fields to update")

    project = await get_project_or_404(session, project_id, org_id)
    for key, value in update_data.items():
        setattr(project, key, value)
    project.updated_at = datetime.now(timezone.utc)
    session.add(project)
    await session.flush()

    log.info(
        "project.updated",
        org_id=str(org_id),
        project_id=str(project.id),
        fields=sorted(update_data),
    )
    return _to_read(project, await _creator_name(session, project.created_by))
