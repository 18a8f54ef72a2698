"""Activity feed endpoints."""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_activity_service
from app.services.activity import ActivityService
from teamtasks_shared.schemas.activity import ActivityRead
from teamtasks_shared.schemas.common import ActivityType

router = APIRouter()


@router.get("", response_model=List[ActivityRead])
async def feed_endpoint(
    team_id: Optional[uuid.UUID] = None,
    activity_type: Optional[ActivityType] = Query(None, alias="type"),
    service: ActivityService = Depends(get_activity_service),
):
    """Most recent activity first, capped at 50 rows."""
    return await service.get_feed(team_id=team_id, activity_type=activity_type)


@router.get("/team/{team_id}", response_model=List[ActivityRead])
async def team_feed_endpoint(
    team_id: uuid.UUID,
    activity_type: Optional[ActivityType] = Query(None, alias="type"),
    service: ActivityService = Depends(get_activity_service),
):
    return await service.get_feed(team_id=team_id, activity_type=activity_type)
