"""Task-related Pydantic schemas shared between the server and its clients."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .common import TASK_TRANSITIONS, TaskPriority, TaskStatus
from .tags import TagRead
from .users import UserSummary


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    team_id: UUID
    created_by_id: UUID
    assigned_to_id: Optional[UUID] = None


class TaskUpdate(BaseModel):
    """The mutable fields of a task. Unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    assigned_to_id: Optional[UUID] = None
    version: Optional[int] = Field(default=None, ge=1)


class TaskPatch(TaskUpdate):
    """Request body for PATCH /tasks/{taskId}: the update plus the acting user."""
    changed_by_id: UUID

    def to_update(self) -> TaskUpdate:
        return TaskUpdate(**self.model_dump(exclude_unset=True, exclude={"changed_by_id"}))


class TaskRead(BaseModel):
    id: UUID
    team_id: UUID
    team_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[date] = None
    created_by_id: Optional[UUID] = None
    assigned_to_id: Optional[UUID] = None
    created_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None
    tags: List[TagRead] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime


class TaskSummary(BaseModel):
    id: UUID
    title: str
    status: TaskStatus

    model_config = {"from_attributes": True}


class TaskFilters(BaseModel):
    """Listing filters for GET /tasks. All filters combine with AND."""
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    team_id: Optional[UUID] = None
    search: Optional[str] = None
    due_date_from: Optional[date] = None
    due_date_to: Optional[date] = None
    tag_ids: List[UUID] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class TaskTagsUpdate(BaseModel):
    """Request body for PUT /tasks/{taskId}/tags."""
    tag_ids: List[UUID]


# ---------------------------------------------------------------------------
# Status history
# ---------------------------------------------------------------------------

class StatusHistoryRead(BaseModel):
    id: UUID
    task_id: UUID
    previous_status: TaskStatus
    new_status: TaskStatus
    changed_by_id: Optional[UUID] = None
    changed_by: Optional[UserSummary] = None
    changed_at: datetime


def validate_status_transition(current: TaskStatus, target: TaskStatus) -> tuple[bool, str]:
    """Validate a task status change against the lifecycle table.

    Completed and cancelled are terminal. Returns (is_valid, error_message).
    """
    allowed = TASK_TRANSITIONS.get(current, [])
    if target in allowed:
        return True, ""
    if not allowed:
        return False, f"Task is {current.value}; no further status changes are allowed"
    return False, (
        f"Cannot transition from {current.value} to {target.value}. "
        f"Allowed: {[s.value for s in allowed]}"
    )
