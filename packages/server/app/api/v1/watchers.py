"""
Watcher endpoints scoped to a user: watchlist and notification inbox.

There is no authentication; the client passes the current ``user_id``.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_settings, get_watcher_service
from app.core.config import Settings
from app.services.watchers import TaskWatcherService
from teamtasks_shared.schemas.common import Page, TaskStatus
from teamtasks_shared.schemas.watchers import (
    NotificationRead,
    NotificationsMarkRead,
    WatchlistItem,
)

router = APIRouter()


@router.get("/watchlist", response_model=Page[WatchlistItem])
async def watchlist_endpoint(
    user_id: uuid.UUID,
    status: Optional[TaskStatus] = None,
    team_id: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: TaskWatcherService = Depends(get_watcher_service),
    settings: Settings = Depends(get_settings),
):
    """Tasks the user watches, most recently updated first, with ``is_overdue``."""
    return await service.get_watchlist(
        user_id, page=page, limit=limit or settings.default_page_size, status=status, team_id=team_id
    )


@router.get("/notifications", response_model=List[NotificationRead])
async def notifications_endpoint(
    user_id: uuid.UUID,
    unread_only: bool = False,
    service: TaskWatcherService = Depends(get_watcher_service),
):
    return await service.get_notifications(user_id, unread_only=unread_only)


@router.patch("/notifications/read", status_code=204)
async def mark_read_endpoint(
    body: NotificationsMarkRead,
    service: TaskWatcherService = Depends(get_watcher_service),
):
    """Mark the user's own notifications as read. Ids owned by other users are ignored."""
    await service.mark_notifications_as_read(body.user_id, body.notification_ids)
