# SQLModel definitions - imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .membership import OrganizationMember  # noqa: F401
from .invitation import Invitation  # noqa: F401
from .project import Project  # noqa: F401
from .time_entry import TimeEntry  # noqa: F401
