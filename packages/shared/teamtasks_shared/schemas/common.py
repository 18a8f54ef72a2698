import math
from enum import Enum
from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Adjacency map for the task lifecycle. Terminal states map to an empty list.
TASK_TRANSITIONS: dict["TaskStatus", list["TaskStatus"]] = {
    TaskStatus.PENDING: [TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED],
    TaskStatus.IN_PROGRESS: [TaskStatus.COMPLETED, TaskStatus.CANCELLED],
    TaskStatus.COMPLETED: [],
    TaskStatus.CANCELLED: [],
}

# Tasks in these states block team deletion.
ACTIVE_TASK_STATUSES: list["TaskStatus"] = [TaskStatus.PENDING, TaskStatus.IN_PROGRESS]


class MemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class ActivityType(str, Enum):
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    STATUS_CHANGED = "status_changed"
    COMMENT_ADDED = "comment_added"
    TEAM_CREATED = "team_created"
    MEMBER_ADDED = "member_added"
    WATCHER_ADDED = "watcher_added"
    WATCHER_REMOVED = "watcher_removed"


class WatcherEventType(str, Enum):
    STATUS_CHANGE = "status_change"
    PRIORITY_CHANGE = "priority_change"
    COMMENT = "comment"


class Page(BaseModel, Generic[T]):
    """Paginated list envelope."""
    data: List[T] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, data: list, total: int, page: int, limit: int) -> "Page":
        return cls(
            data=data,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )
