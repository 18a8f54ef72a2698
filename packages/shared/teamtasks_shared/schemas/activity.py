"""Activity feed schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .common import ActivityType
from .tasks import TaskSummary
from .users import UserSummary


class ActivityCreate(BaseModel):
    """Input for appending one audit row."""
    type: ActivityType
    description: str
    actor_id: UUID
    team_id: Optional[UUID] = None
    task_id: Optional[UUID] = None


class ActivityRead(BaseModel):
    id: UUID
    type: ActivityType
    description: Optional[str] = None
    actor_id: Optional[UUID] = None
    team_id: Optional[UUID] = None
    task_id: Optional[UUID] = None
    actor: Optional[UserSummary] = None
    task: Optional[TaskSummary] = None
    created_at: datetime
