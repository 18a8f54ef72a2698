"""
Service dependencies.

Each request gets one session; services sharing a request share that session.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.database import get_session
from app.services.activity import ActivityService
from app.services.comments import CommentService
from app.services.tags import TagService
from app.services.tasks import TaskService
from app.services.teams import TeamService
from app.services.users import UserService
from app.services.watchers import TaskWatcherService


def get_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_activity_service(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> ActivityService:
    return ActivityService(session, feed_limit=settings.activity_feed_limit)


def get_watcher_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityService = Depends(get_activity_service),
    settings: Settings = Depends(get_settings),
) -> TaskWatcherService:
    return TaskWatcherService(session, activity, max_watchers_per_task=settings.max_watchers_per_task)


def get_task_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityService = Depends(get_activity_service),
    watchers: TaskWatcherService = Depends(get_watcher_service),
    settings: Settings = Depends(get_settings),
) -> TaskService:
    return TaskService(session, activity, watchers, max_page_size=settings.max_page_size)


def get_comment_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityService = Depends(get_activity_service),
    watchers: TaskWatcherService = Depends(get_watcher_service),
) -> CommentService:
    return CommentService(session, activity, watchers)


def get_team_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityService = Depends(get_activity_service),
) -> TeamService:
    return TeamService(session, activity)


def get_user_service(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(session, bcrypt_rounds=settings.bcrypt_rounds)


def get_tag_service(session: AsyncSession = Depends(get_session)) -> TagService:
    return TagService(session)
