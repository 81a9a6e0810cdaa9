from __future__ import annotations

import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

MIN_HOURS_EXCLUSIVE = 0
MAX_HOURS = 24


class TimeEntryCreate(BaseModel):
    project_id: UUID
    date: dt.date
    task: str = Field(min_length=1, max_length=2000)
    hours: float


class TimeEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    task: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    hours: Optional[float] = None


class TimeEntryFilters(BaseModel):
    """Optional filters for listing; every supplied filter is ANDed."""
    project_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None


class TimeEntryRead(BaseModel):
    id: UUID
    project_id: UUID
    project_name: str
    user_id: UUID
    user_name: str
    user_email: str
    date: dt.date
    task: str
    hours: float
    created_at: dt.datetime
    updated_at: dt.datetime


class TimeEntryResponse(BaseModel):
    time_entry: TimeEntryRead


class TimeEntryListResponse(BaseModel):
    time_entries: List[TimeEntryRead]


def validate_hours(hours: float) -> tuple[bool, str]:
    """Check that hours lies in (0, 24].

    Returns (is_valid, error_message).
    """
    if hours != hours or hours <= MIN_HOURS_EXCLUSIVE:  # NaN or non-positive
        return False, "Hours must be greater than 0"
    if hours > MAX_HOURS:
        return False, "Hours cannot exceed 24"
    return True, ""
