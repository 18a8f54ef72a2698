"""
Activity service: append-only audit log and the team activity feed.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ActivityLoggingFailed
from app.models.activity import Activity
from app.models.task import Task
from app.models.user import User
from teamtasks_shared.schemas.activity import ActivityCreate, ActivityRead
from teamtasks_shared.schemas.common import ActivityType
from teamtasks_shared.schemas.tasks import TaskSummary
from teamtasks_shared.schemas.users import UserSummary

log = structlog.get_logger()


class ActivityService:
    def __init__(self, session: AsyncSession, feed_limit: Optional[int] = None):
        self.session = session
        self.feed_limit = feed_limit if feed_limit is not None else get_settings().activity_feed_limit

    async def create_activity(self, data: ActivityCreate) -> Activity:
        """Append one audit row. Storage failures surface as ActivityLoggingFailed."""
        activity = Activity(
            type=data.type.value,
            description=data.description,
            actor_id=data.actor_id,
            team_id=data.team_id,
            task_id=data.task_id,
        )
        try:
            self.session.add(activity)
            await self.session.flush()
        except SQLAlchemyError as exc:
            log.error("activity.write_failed", type=data.type.value, error=str(exc))
            raise ActivityLoggingFailed(
                "Activity logging failed",
                activity_type=data.type.value,
                task_id=data.task_id,
                team_id=data.team_id,
            ) from exc
        return activity

    async def get_feed(
        self,
        team_id: Optional[uuid.UUID] = None,
        activity_type: Optional[ActivityType] = None,
    ) -> list[ActivityRead]:
        """Most recent activity first, capped at ``feed_limit`` rows."""
        stmt = (
            select(Activity, User, Task)
            .outerjoin(User, User.id == Activity.actor_id)
            .outerjoin(Task, Task.id == Activity.task_id)
        )
        if team_id:
            stmt = stmt.where(Activity.team_id == team_id)
        if activity_type:
            stmt = stmt.where(Activity.type == activity_type.value)
        stmt = stmt.order_by(Activity.created_at.desc()).limit(self.feed_limit)

        result = await self.session.execute(stmt)
        return [
            ActivityRead(
                id=activity.id,
                type=activity.type,
                description=activity.description,
                actor_id=activity.actor_id,
                team_id=activity.team_id,
                task_id=activity.task_id,
                actor=UserSummary.model_validate(actor) if actor else None,
                task=TaskSummary.model_validate(task) if task else None,
                created_at=activity.created_at,
            )
            for activity, actor, task in result.all()
        ]
