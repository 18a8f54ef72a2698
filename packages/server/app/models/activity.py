"""Activity feed and status history models (append-only, immutable)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import _utcnow


class Activity(SQLModel, table=True):
    __tablename__ = "activities"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    type: str = Field(nullable=False, index=True)  # e.g. task_created, status_changed
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    actor_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    team_id: Optional[uuid.UUID] = Field(default=None, foreign_key="teams.id", index=True, ondelete="CASCADE")
    task_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tasks.id", ondelete="CASCADE")
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        index=True,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )


class StatusHistory(SQLModel, table=True):
    __tablename__ = "status_history"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE")
    previous_status: str = Field(nullable=False)
    new_status: str = Field(nullable=False)
    changed_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    changed_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
