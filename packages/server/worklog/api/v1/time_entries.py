"""
Time entry endpoints.

Listing accepts optional project_id, user_id, start_date and end_date query
parameters; entries matching all of them are returned.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from worklog.core.auth import OrgMember, require_member
from worklog.core.database import get_session
from worklog.services import time_entries as entry_service
from worklog_shared.schemas.organizations import SuccessResponse
from worklog_shared.schemas.time_entries import (
    TimeEntryCreate,
    TimeEntryFilters,
    TimeEntryListResponse,
    TimeEntryResponse,
    TimeEntryUpdate,
)

router = APIRouter()


def _filters(
    project_id: Optional[uuid.UUID] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    start_date: Optional[dt.date] = Query(None),
    end_date: Optional[dt.date] = Query(None),
) -> TimeEntryFilters:
    return TimeEntryFilters(
        project_id=project_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("", response_model=TimeEntryListResponse)
async def list_time_entries(
    filters: TimeEntryFilters = Depends(_filters),
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    entries = await entry_service.list_time_entries(session, member.org_id, filters)
    return TimeEntryListResponse(time_entries=entries)


@router.post("", response_model=TimeEntryResponse, status_code=201)
async def create_time_entry(
    body: TimeEntryCreate,
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Log hours for the caller. The owner always comes from the session."""
    entry = await entry_service.create_time_entry(session, body, member)
    await session.commit()
    return TimeEntryResponse(time_entry=entry)


@router.get("/export")
async def export_time_entries(
    filters: TimeEntryFilters = Depends(_filters),
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Same filters as the listing, rendered as CSV."""
    entries = await entry_service.list_time_entries(session, member.org_id, filters)
    filename = f"worklog-{member.org.slug}-{dt.date.today().isoformat()}.csv"
    return Response(
        content=entry_service.render_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{entry_id}", response_model=TimeEntryResponse)
async def update_time_entry(
    entry_id: uuid.UUID,
    body: TimeEntryUpdate,
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    entry = await entry_service.update_time_entry(session, entry_id, body, member)
    await session.commit()
    return TimeEntryResponse(time_entry=entry)


@router.delete("/{entry_id}", response_model=SuccessResponse)
async def delete_time_entry(
    entry_id: uuid.UUID,
    member: OrgMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await entry_service.delete_time_entry(session, entry_id, member)
    await session.commit()
    return SuccessResponse(success=True)
