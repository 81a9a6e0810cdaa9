"""
API v1 Router

Org-scoped endpoints are prefixed with /organizations/{org_id}.
"""

from fastapi import APIRouter
from . import projects, stats, time_entries
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: create, join, accept-invitation)
router.include_router(orgs_global_router, prefix="/organizations", tags=["Organizations"])

# Organization routes (org-scoped: members, approvals, invitations)
router.include_router(orgs_scoped_router, prefix="/organizations/{org_id}", tags=["Organizations"])

# Include resource routers
router.include_router(projects.router, prefix="/organizations/{org_id}/projects", tags=["Projects"])
router.include_router(
    time_entries.router, prefix="/organizations/{org_id}/time-entries", tags=["Time Entries"]
)
router.include_router(stats.router, prefix="/organizations/{org_id}/stats", tags=["Stats"])
