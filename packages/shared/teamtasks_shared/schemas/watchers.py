"""Task watcher, watchlist and notification schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import TaskPriority, TaskStatus, WatcherEventType
from .users import UserSummary


class WatcherSubscribe(BaseModel):
    """Request body for POST /tasks/{taskId}/watchers."""
    user_id: UUID


class WatcherRead(BaseModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    user: Optional[UserSummary] = None
    created_at: datetime


class WatchlistItem(BaseModel):
    task_id: UUID
    title: str
    team_id: UUID
    team_name: str = ""
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[date] = None
    last_update_at: datetime
    is_overdue: bool


class NotificationRead(BaseModel):
    id: UUID
    user_id: UUID
    task_id: UUID
    task_title: Optional[str] = None
    event_type: WatcherEventType
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read_at: Optional[datetime] = None


class NotificationsMarkRead(BaseModel):
    """Request body for PATCH /watchers/notifications/read."""
    user_id: UUID
    notification_ids: List[UUID]
