"""Task, tag and comment models."""

from datetime import date
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    team_id: uuid.UUID = Field(foreign_key="teams.id", nullable=False, index=True, ondelete="CASCADE")
    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    status: str = Field(nullable=False, default="pending", index=True)  # pending | in_progress | completed | cancelled
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    due_date: Optional[date] = Field(default=None, sa_type=sa.Date)
    created_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    assigned_to_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    version: int = Field(default=1, nullable=False)  # optimistic concurrency token


class Tag(UUIDMixin, SQLModel, table=True):
    __tablename__ = "tags"

    name: str = Field(unique=True, nullable=False, index=True)


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True, ondelete="CASCADE")
    tag_id: uuid.UUID = Field(foreign_key="tags.id", primary_key=True, ondelete="CASCADE")


class Comment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "comments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE")
    author_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, ondelete="CASCADE")
    content: str = Field(nullable=False, sa_type=sa.Text)
