from typing import Optional, List
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_archived: Optional[bool] = None


class ProjectRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    is_archived: bool
    created_by: str  # creator's display name
    created_at: datetime


class ProjectResponse(BaseModel):
    project: ProjectRead


class ProjectListResponse(BaseModel):
    projects: List[ProjectRead]
