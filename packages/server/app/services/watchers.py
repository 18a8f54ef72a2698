"""
Task watcher service: subscriptions, notification fan-out, watchlist.

Handles:
- Subscribe/unsubscribe with team-membership and watcher-cap policies
- One notification per watcher per qualifying event, never for the actor
- Per-user watchlist with derived overdue flag
- Per-user notification inbox and bulk mark-as-read
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import NotFoundError, PolicyViolation
from app.models.task import Task
from app.models.team import Team, TeamMembership
from app.models.user import User
from app.models.watcher import TaskWatcher, TaskWatcherNotification
from app.services.activity import ActivityService
from app.services.side_effects import run_side_effects
from teamtasks_shared.schemas.activity import ActivityCreate
from teamtasks_shared.schemas.common import ActivityType, Page, TaskStatus, WatcherEventType
from teamtasks_shared.schemas.users import UserSummary
from teamtasks_shared.schemas.watchers import NotificationRead, WatcherRead, WatchlistItem

log = structlog.get_logger()


def is_overdue(due_date: Optional[date], status: str, today: Optional[date] = None) -> bool:
    """A task is overdue when it has a due date in the past and is not completed."""
    if due_date is None or status == TaskStatus.COMPLETED.value:
        return False
    today = today or datetime.now(timezone.utc).date()
    return due_date < today


class TaskWatcherService:
    def __init__(
        self,
        session: AsyncSession,
        activity: ActivityService,
        max_watchers_per_task: Optional[int] = None,
    ):
        self.session = session
        self.activity = activity
        self.max_watchers_per_task = (
            max_watchers_per_task if max_watchers_per_task is not None else get_settings().max_watchers_per_task
        )

    # -----------------------------------------------------------------------
    # Subscriptions
    # -----------------------------------------------------------------------

    async def _find(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TaskWatcher]:
        result = await self.session.execute(
            select(TaskWatcher).where(
                TaskWatcher.task_id == task_id,
                TaskWatcher.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def count_watchers(self, task_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(TaskWatcher).where(TaskWatcher.task_id == task_id)
        )
        return result.scalar_one()

    async def get_watchers_by_task(self, task_id: uuid.UUID) -> list[WatcherRead]:
        if not await self.session.get(Task, task_id):
            raise NotFoundError("Task not found", task_id=task_id)
        result = await self.session.execute(
            select(TaskWatcher, User)
            .join(User, User.id == TaskWatcher.user_id)
            .where(TaskWatcher.task_id == task_id)
            .order_by(TaskWatcher.created_at.asc())
        )
        return [self.to_read(w, u) for w, u in result.all()]

    @staticmethod
    def to_read(watcher: TaskWatcher, user: Optional[User] = None) -> WatcherRead:
        return WatcherRead(
            id=watcher.id,
            task_id=watcher.task_id,
            user_id=watcher.user_id,
            user=UserSummary.model_validate(user) if user else None,
            created_at=watcher.created_at,
        )

    async def subscribe(self, task_id: uuid.UUID, user_id: uuid.UUID) -> tuple[TaskWatcher, bool]:
        """Subscribe a user to a task. Returns (watcher, created)."""
        task = await self.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found", task_id=task_id)
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)

        team = await self.session.get(Team, task.team_id)
        if team:
            membership = await self.session.get(TeamMembership, (user_id, team.id))
            if not membership:
                raise PolicyViolation(
                    "User is not a member of the task's team",
                    task_id=task_id,
                    user_id=user_id,
                    team_id=team.id,
                )

        existing = await self._find(task_id, user_id)
        if existing:
            return existing, False

        count = await self.count_watchers(task_id)
        if count >= self.max_watchers_per_task:
            raise PolicyViolation(
                "Maximum number of watchers reached for this task",
                task_id=task_id,
                max_watchers=self.max_watchers_per_task,
            )

        title, team_id = task.title, task.team_id
        watcher = TaskWatcher(task_id=task_id, user_id=user_id)
        self.session.add(watcher)
        try:
            await self.session.commit()
        except IntegrityError:
            # A concurrent subscribe won the unique (task, user) race.
            await self.session.rollback()
            existing = await self._find(task_id, user_id)
            if existing:
                return existing, False
            raise

        log.info("watcher.added", task_id=str(task_id), user_id=str(user_id))

        await run_side_effects(
            self.session,
            "task_watcher",
            watcher.id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.WATCHER_ADDED,
                    description=f'Started watching task "{title}".',
                    actor_id=user_id,
                    team_id=team_id,
                    task_id=task_id,
                ))),
            ],
        )
        return watcher, True

    async def unsubscribe(self, task_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Remove a subscription. Missing subscriptions are a no-op."""
        watcher = await self._find(task_id, user_id)
        if not watcher:
            return

        task = await self.session.get(Task, task_id)
        title, team_id = (task.title, task.team_id) if task else ("", None)
        watcher_id = watcher.id

        await self.session.delete(watcher)
        await self.session.commit()
        log.info("watcher.removed", task_id=str(task_id), user_id=str(user_id))

        await run_side_effects(
            self.session,
            "task_watcher",
            watcher_id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.WATCHER_REMOVED,
                    description=f'Stopped watching task "{title}".',
                    actor_id=user_id,
                    team_id=team_id,
                    task_id=task_id,
                ))),
            ],
        )

    # -----------------------------------------------------------------------
    # Notifications
    # -----------------------------------------------------------------------

    async def notify_watchers(
        self,
        task_id: uuid.UUID,
        event_type: WatcherEventType,
        actor_id: uuid.UUID,
        payload: Optional[dict[str, Any]] = None,
    ) -> list[TaskWatcherNotification]:
        """Create one notification per watcher except the actor.

        Rows are flushed, not committed; the caller owns the unit of work.
        """
        result = await self.session.execute(
            select(TaskWatcher.user_id).where(
                TaskWatcher.task_id == task_id,
                TaskWatcher.user_id != actor_id,
            )
        )
        recipients = list(result.scalars().all())
        if not recipients:
            return []

        now = datetime.now(timezone.utc)
        notifications = [
            TaskWatcherNotification(
                user_id=recipient,
                task_id=task_id,
                event_type=event_type.value,
                payload=payload or {},
                created_at=now,
            )
            for recipient in recipients
        ]
        self.session.add_all(notifications)
        await self.session.flush()

        log.info(
            "watchers.notified",
            task_id=str(task_id),
            event_type=event_type.value,
            recipients=len(notifications),
        )
        return notifications

    async def get_notifications(self, user_id: uuid.UUID, unread_only: bool = False) -> list[NotificationRead]:
        stmt = (
            select(TaskWatcherNotification, Task.title)
            .join(Task, Task.id == TaskWatcherNotification.task_id)
            .where(TaskWatcherNotification.user_id == user_id)
        )
        if unread_only:
            stmt = stmt.where(TaskWatcherNotification.read_at.is_(None))
        stmt = stmt.order_by(TaskWatcherNotification.created_at.desc())

        result = await self.session.execute(stmt)
        return [
            NotificationRead(
                id=n.id,
                user_id=n.user_id,
                task_id=n.task_id,
                task_title=title,
                event_type=n.event_type,
                payload=n.payload or {},
                created_at=n.created_at,
                read_at=n.read_at,
            )
            for n, title in result.all()
        ]

    async def mark_notifications_as_read(
        self, user_id: uuid.UUID, notification_ids: Sequence[uuid.UUID]
    ) -> int:
        """Stamp read_at on the user's own unread notifications among ``notification_ids``.

        Ids owned by other users are ignored. Returns the number of rows marked.
        """
        if not notification_ids:
            return 0
        result = await self.session.execute(
            update(TaskWatcherNotification)
            .where(
                TaskWatcherNotification.id.in_(list(notification_ids)),
                TaskWatcherNotification.user_id == user_id,
                TaskWatcherNotification.read_at.is_(None),
            )
            .values(read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        await self.session.commit()
        log.info("notifications.read", user_id=str(user_id), count=result.rowcount)
        return result.rowcount

    # -----------------------------------------------------------------------
    # Watchlist
    # -----------------------------------------------------------------------

    async def get_watchlist(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        status: Optional[TaskStatus] = None,
        team_id: Optional[uuid.UUID] = None,
    ) -> Page[WatchlistItem]:
        stmt = (
            select(Task, Team.name)
            .join(TaskWatcher, TaskWatcher.task_id == Task.id)
            .outerjoin(Team, Team.id == Task.team_id)
            .where(TaskWatcher.user_id == user_id)
        )
        if status:
            stmt = stmt.where(Task.status == status.value)
        if team_id:
            stmt = stmt.where(Task.team_id == team_id)

        total = (
            await self.session.execute(select(func.count()).select_from(stmt.subquery()))
        ).scalar_one()

        result = await self.session.execute(
            stmt.order_by(Task.updated_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        today = datetime.now(timezone.utc).date()
        data = [
            WatchlistItem(
                task_id=task.id,
                title=task.title,
                team_id=task.team_id,
                team_name=team_name or "",
                status=task.status,
                priority=task.priority,
                due_date=task.due_date,
                last_update_at=task.updated_at,
                is_overdue=is_overdue(task.due_date, task.status, today),
            )
            for task, team_name in result.all()
        ]
        return Page[WatchlistItem].build(data, total, page, limit)
