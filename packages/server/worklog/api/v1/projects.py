"""
Project endpoints: list, create and archive projects inside an organization.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from worklog.core.auth import OrgMember, require_admin, require_member
from worklog.core.database import get_session
from worklog.services import projects as project_service
from worklog_shared.schemas.projects import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)

router = APIRouter()


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    projects = await project_service.list_projects(session, member.org_id)
    return ProjectListResponse(projects=projects)


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    body: ProjectCreate,
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.create_project(session, body, admin.org_id, admin.user)
    await session.commit()
    return ProjectResponse(project=project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Rename, re-describe or (un)archive a project. Admin only."""
    project = await project_service.update_project(session, project_id, body, admin.org_id)
    await session.commit()
    return ProjectResponse(project=project)
