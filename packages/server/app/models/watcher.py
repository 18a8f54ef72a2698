"""Task watcher subscriptions and their notifications."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, _utcnow


class TaskWatcher(SQLModel, table=True):
    __tablename__ = "task_watchers"
    __table_args__ = (sa.UniqueConstraint("task_id", "user_id", name="uq_task_watchers_task_user"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE")
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE")
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )


class TaskWatcherNotification(SQLModel, table=True):
    __tablename__ = "task_watcher_notifications"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE")
    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, ondelete="CASCADE")
    event_type: str = Field(nullable=False)  # status_change | priority_change | comment
    payload: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
    read_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
