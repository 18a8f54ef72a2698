"""Team and team membership models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, _utcnow


class Team(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "teams"

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)


class TeamMembership(SQLModel, table=True):
    """User-Team membership (join table)."""

    __tablename__ = "team_memberships"

    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    team_id: uuid.UUID = Field(foreign_key="teams.id", primary_key=True, ondelete="CASCADE")
    role: str = Field(nullable=False, default="member")  # owner | member
    joined_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
