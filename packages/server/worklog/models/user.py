"""User model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # stored lower-cased
    name: str = Field(nullable=False)
    avatar_url: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # bcrypt
