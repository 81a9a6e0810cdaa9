import re
from enum import Enum
from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"  # reserved; no operation moves a member here


DEFAULT_PROJECT_NAME = "General"
DEFAULT_PROJECT_DESCRIPTION = "Default project for general tasks"

_SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACES = re.compile(r"\s+")
_SLUG_HYPHENS = re.compile(r"-+")


def slugify(name: str) -> str:
    """Derive the URL-safe organization slug from a display name.

    "Acme Corp" and "Acme  Corp!" both become "acme-corp".
    """
    slug = _SLUG_STRIP.sub("", name.lower())
    slug = _SLUG_SPACES.sub("-", slug.strip())
    slug = _SLUG_HYPHENS.sub("-", slug)
    return slug.strip("-")


class ErrorResponse(BaseModel):
    error: str
