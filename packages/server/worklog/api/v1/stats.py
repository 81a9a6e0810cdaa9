"""
Monthly statistics endpoint (admin view).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from worklog.core.auth import OrgMember, require_admin
from worklog.core.database import get_session
from worklog.services import stats as stats_service
from worklog_shared.schemas.stats import StatsResponse

router = APIRouter()


@router.get("", response_model=StatsResponse)
async def get_stats(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current month"),
    admin: OrgMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await stats_service.monthly_stats(session, admin.org_id, month)
