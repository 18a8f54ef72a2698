"""
Task endpoints: CRUD, status changes, tags, history, comments, watchers.

Status lifecycle: pending → in_progress → completed, with cancelled reachable
from either non-terminal state. Completed and cancelled are terminal.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.v1.deps import (
    get_comment_service,
    get_settings,
    get_task_service,
    get_watcher_service,
)
from app.core.config import Settings
from app.services.comments import CommentService
from app.services.tasks import TaskService
from app.services.watchers import TaskWatcherService
from teamtasks_shared.schemas.comments import CommentCreate, CommentRead
from teamtasks_shared.schemas.common import Page, TaskPriority, TaskStatus
from teamtasks_shared.schemas.tags import TagRead
from teamtasks_shared.schemas.tasks import (
    StatusHistoryRead,
    TaskCreate,
    TaskFilters,
    TaskPatch,
    TaskRead,
    TaskTagsUpdate,
)
from teamtasks_shared.schemas.watchers import WatcherRead, WatcherSubscribe

router = APIRouter()


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=Page[TaskRead])
async def list_tasks_endpoint(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    team_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    due_date_from: Optional[date] = None,
    due_date_to: Optional[date] = None,
    tags: Optional[List[uuid.UUID]] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: TaskService = Depends(get_task_service),
    settings: Settings = Depends(get_settings),
):
    """List tasks, newest first, with optional filters. Tag filter matches any of the given tags."""
    filters = TaskFilters(
        status=status,
        priority=priority,
        team_id=team_id,
        search=search,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        tag_ids=tags or [],
        page=page,
        limit=limit or settings.default_page_size,
    )
    return await service.get_all_tasks(filters)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    service: TaskService = Depends(get_task_service),
):
    task = await service.create_task(task_in)
    return await service.enrich_task(task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    service: TaskService = Depends(get_task_service),
):
    return await service.get_task(task_id)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    body: TaskPatch,
    service: TaskService = Depends(get_task_service),
):
    """Update task fields and/or status on behalf of ``changed_by_id``."""
    task = await service.update_task(task_id, body.to_update(), body.changed_by_id)
    return await service.enrich_task(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(task_id)


# ---------------------------------------------------------------------------
# Tags & history
# ---------------------------------------------------------------------------


@router.put("/{task_id}/tags", response_model=List[TagRead])
async def update_task_tags_endpoint(
    task_id: uuid.UUID,
    body: TaskTagsUpdate,
    service: TaskService = Depends(get_task_service),
):
    """Replace the task's tags."""
    return await service.update_task_tags(task_id, body.tag_ids)


@router.get("/{task_id}/history", response_model=List[StatusHistoryRead])
async def status_history_endpoint(
    task_id: uuid.UUID,
    service: TaskService = Depends(get_task_service),
):
    return await service.get_status_history(task_id)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/{task_id}/comments", response_model=List[CommentRead])
async def list_task_comments_endpoint(
    task_id: uuid.UUID,
    service: CommentService = Depends(get_comment_service),
):
    return await service.list_for_task(task_id)


@router.post("/{task_id}/comments", response_model=CommentRead, status_code=201)
async def create_comment_endpoint(
    task_id: uuid.UUID,
    body: CommentCreate,
    service: CommentService = Depends(get_comment_service),
):
    return await service.create_comment(task_id, body.author_id, body.content)


# ---------------------------------------------------------------------------
# Watchers
# ---------------------------------------------------------------------------


@router.get("/{task_id}/watchers", response_model=List[WatcherRead])
async def list_watchers_endpoint(
    task_id: uuid.UUID,
    service: TaskWatcherService = Depends(get_watcher_service),
):
    return await service.get_watchers_by_task(task_id)


@router.post("/{task_id}/watchers", response_model=WatcherRead, status_code=201)
async def subscribe_endpoint(
    task_id: uuid.UUID,
    body: WatcherSubscribe,
    response: Response,
    service: TaskWatcherService = Depends(get_watcher_service),
):
    """Watch a task. Returns 201 for a new subscription, 200 if it already existed."""
    watcher, created = await service.subscribe(task_id, body.user_id)
    if not created:
        response.status_code = 200
    return service.to_read(watcher)


@router.delete("/{task_id}/watchers/{user_id}", status_code=204)
async def unsubscribe_endpoint(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    service: TaskWatcherService = Depends(get_watcher_service),
):
    await service.unsubscribe(task_id, user_id)
