"""
Task service layer: business logic for tasks, tags and status history.

Handles:
- Task CRUD with team/user reference checks
- Status transitions gated by the lifecycle table
- Optimistic concurrency on updates (version column)
- Status history, activity and watcher notifications after each committed write
- Filtered, paginated listing
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import (
    ConflictError,
    InvalidTransition,
    NotFoundError,
    ValidationFailed,
)
from app.models.activity import StatusHistory
from app.models.task import Tag, Task, TaskTag
from app.models.team import Team
from app.models.user import User
from app.services.activity import ActivityService
from app.services.side_effects import SideEffect, run_side_effects
from app.services.watchers import TaskWatcherService
from teamtasks_shared.schemas.activity import ActivityCreate
from teamtasks_shared.schemas.common import (
    ActivityType,
    Page,
    TaskStatus,
    WatcherEventType,
)
from teamtasks_shared.schemas.tags import TagRead
from teamtasks_shared.schemas.tasks import (
    StatusHistoryRead,
    TaskCreate,
    TaskFilters,
    TaskRead,
    TaskUpdate,
    validate_status_transition,
)
from teamtasks_shared.schemas.users import UserSummary

log = structlog.get_logger()


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _value(v: Any) -> Any:
    return v.value if hasattr(v, "value") else v


def _escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TaskService:
    def __init__(
        self,
        session: AsyncSession,
        activity: ActivityService,
        watchers: TaskWatcherService,
        max_page_size: Optional[int] = None,
    ):
        self.session = session
        self.activity = activity
        self.watchers = watchers
        self.max_page_size = max_page_size if max_page_size is not None else get_settings().max_page_size

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def get_task_or_404(self, task_id: uuid.UUID) -> Task:
        task = await self.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found", task_id=task_id)
        return task

    async def _require_user(self, user_id: uuid.UUID, role: str = "user") -> User:
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"{role.capitalize()} not found", user_id=user_id)
        return user

    async def enrich_tasks(self, tasks: Sequence[Task]) -> list[TaskRead]:
        """Convert Task rows to TaskRead with team name, users and tags, batched per relation."""
        if not tasks:
            return []
        task_ids = [t.id for t in tasks]
        team_ids = {t.team_id for t in tasks}
        user_ids = {uid for t in tasks for uid in (t.created_by_id, t.assigned_to_id) if uid}

        teams = dict(
            (await self.session.execute(select(Team.id, Team.name).where(Team.id.in_(team_ids)))).all()
        )
        users: dict[uuid.UUID, User] = {}
        if user_ids:
            result = await self.session.execute(select(User).where(User.id.in_(user_ids)))
            users = {u.id: u for u in result.scalars().all()}

        tags: dict[uuid.UUID, list[TagRead]] = {tid: [] for tid in task_ids}
        result = await self.session.execute(
            select(TaskTag.task_id, Tag)
            .join(Tag, Tag.id == TaskTag.tag_id)
            .where(TaskTag.task_id.in_(task_ids))
            .order_by(Tag.name)
        )
        for task_id, tag in result.all():
            tags[task_id].append(TagRead.model_validate(tag))

        def summary(user_id: Optional[uuid.UUID]) -> Optional[UserSummary]:
            user = users.get(user_id) if user_id else None
            return UserSummary.model_validate(user) if user else None

        return [
            TaskRead(
                id=t.id,
                team_id=t.team_id,
                team_name=teams.get(t.team_id),
                title=t.title,
                description=t.description,
                status=t.status,
                priority=t.priority,
                due_date=t.due_date,
                created_by_id=t.created_by_id,
                assigned_to_id=t.assigned_to_id,
                created_by=summary(t.created_by_id),
                assigned_to=summary(t.assigned_to_id),
                tags=tags[t.id],
                version=t.version,
                created_at=t.created_at,
                updated_at=t.updated_at,
            )
            for t in tasks
        ]

    async def enrich_task(self, task: Task) -> TaskRead:
        return (await self.enrich_tasks([task]))[0]

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def get_task(self, task_id: uuid.UUID) -> TaskRead:
        return await self.enrich_task(await self.get_task_or_404(task_id))

    async def get_all_tasks(self, filters: TaskFilters) -> Page[TaskRead]:
        if filters.limit > self.max_page_size:
            raise ValidationFailed(
                f"limit must be at most {self.max_page_size}", limit=filters.limit
            )

        stmt = select(Task)
        if filters.status:
            stmt = stmt.where(Task.status == filters.status.value)
        if filters.priority:
            stmt = stmt.where(Task.priority == filters.priority.value)
        if filters.team_id:
            stmt = stmt.where(Task.team_id == filters.team_id)
        if filters.due_date_from:
            stmt = stmt.where(Task.due_date >= filters.due_date_from)
        if filters.due_date_to:
            stmt = stmt.where(Task.due_date <= filters.due_date_to)
        if filters.tag_ids:
            stmt = stmt.where(
                Task.id.in_(select(TaskTag.task_id).where(TaskTag.tag_id.in_(filters.tag_ids)))
            )
        if filters.search:
            pattern = f"%{_escape_like(filters.search)}%"
            stmt = stmt.where(
                or_(
                    Task.title.ilike(pattern, escape="\\"),
                    Task.description.ilike(pattern, escape="\\"),
                )
            )

        total = (
            await self.session.execute(select(func.count()).select_from(stmt.subquery()))
        ).scalar_one()

        result = await self.session.execute(
            stmt.order_by(Task.created_at.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        data = await self.enrich_tasks(list(result.scalars().all()))
        return Page[TaskRead].build(data, total, filters.page, filters.limit)

    async def get_status_history(self, task_id: uuid.UUID) -> list[StatusHistoryRead]:
        await self.get_task_or_404(task_id)
        result = await self.session.execute(
            select(StatusHistory, User)
            .outerjoin(User, User.id == StatusHistory.changed_by_id)
            .where(StatusHistory.task_id == task_id)
            .order_by(StatusHistory.changed_at.desc())
        )
        return [
            StatusHistoryRead(
                id=h.id,
                task_id=h.task_id,
                previous_status=h.previous_status,
                new_status=h.new_status,
                changed_by_id=h.changed_by_id,
                changed_by=UserSummary.model_validate(user) if user else None,
                changed_at=h.changed_at,
            )
            for h, user in result.all()
        ]

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def create_task(self, task_in: TaskCreate) -> Task:
        title = (task_in.title or "").strip()
        if not title:
            raise ValidationFailed("Title is required", field="title")
        if task_in.due_date and task_in.due_date < _today():
            raise ValidationFailed(
                "Due date cannot be in the past", field="due_date", due_date=task_in.due_date
            )

        if not await self.session.get(Team, task_in.team_id):
            raise NotFoundError("Team not found", team_id=task_in.team_id)
        await self._require_user(task_in.created_by_id, "creator")
        if task_in.assigned_to_id:
            await self._require_user(task_in.assigned_to_id, "assignee")

        task = Task(
            team_id=task_in.team_id,
            title=title,
            description=task_in.description,
            status=task_in.status.value,
            priority=task_in.priority.value,
            due_date=task_in.due_date,
            created_by_id=task_in.created_by_id,
            assigned_to_id=task_in.assigned_to_id,
        )
        self.session.add(task)
        await self.session.commit()
        log.info("task.created", task_id=str(task.id), team_id=str(task.team_id))

        task_id, team_id, actor_id = task.id, task.team_id, task.created_by_id
        await run_side_effects(
            self.session,
            "task",
            task_id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.TASK_CREATED,
                    description=f'Task "{title}" created.',
                    actor_id=actor_id,
                    team_id=team_id,
                    task_id=task_id,
                ))),
            ],
        )
        return task

    async def update_task(
        self,
        task_id: uuid.UUID,
        update_in: TaskUpdate,
        changed_by_id: uuid.UUID,
    ) -> Task:
        """Apply an update command, then record history, activity and notifications.

        The task row is committed before any side effect runs; see
        ``run_side_effects`` for the failure policy.
        """
        task = await self.get_task_or_404(task_id)
        await self._require_user(changed_by_id, "acting user")

        data = {k: _value(v) for k, v in update_in.model_dump(exclude_unset=True).items()}
        expected_version = data.pop("version", None)
        if expected_version is not None and expected_version != task.version:
            raise ConflictError(
                "Task was modified since it was read",
                task_id=task_id,
                expected_version=expected_version,
                current_version=task.version,
            )

        if "title" in data:
            data["title"] = (data["title"] or "").strip()
            if not data["title"]:
                raise ValidationFailed("Title is required", field="title")
        for field in ("status", "priority"):
            if field in data and data[field] is None:
                raise ValidationFailed(f"{field} cannot be null", field=field)
        # Only a changed due date has to be today or later.
        due_date = data.get("due_date")
        if due_date and due_date != task.due_date and due_date < _today():
            raise ValidationFailed(
                "Due date cannot be in the past", field="due_date", due_date=data["due_date"]
            )
        if data.get("assigned_to_id"):
            await self._require_user(data["assigned_to_id"], "assignee")

        changes = {k: v for k, v in data.items() if getattr(task, k) != v}
        if not changes:
            return task

        previous_status = task.status
        previous_priority = task.priority
        status_changed = "status" in changes
        if status_changed:
            valid, msg = validate_status_transition(
                TaskStatus(previous_status), TaskStatus(changes["status"])
            )
            if not valid:
                raise InvalidTransition(
                    msg,
                    task_id=task_id,
                    current_status=previous_status,
                    requested_status=changes["status"],
                )

        loaded_version = task.version
        result = await self.session.execute(
            update(Task)
            .where(Task.id == task_id, Task.version == loaded_version)
            .values(**changes, version=loaded_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise ConflictError(
                "Task was modified concurrently", task_id=task_id, version=loaded_version
            )
        await self.session.commit()
        await self.session.refresh(task)
        log.info(
            "task.updated",
            task_id=str(task_id),
            fields=sorted(changes),
            version=task.version,
        )

        title, team_id = task.title, task.team_id
        effects: list[SideEffect] = []
        if status_changed:
            new_status = changes["status"]
            effects.append(("status_history", lambda: self._record_status_change(
                task_id, previous_status, new_status, changed_by_id
            )))
            effects.append(("activity", lambda: self.activity.create_activity(ActivityCreate(
                type=ActivityType.STATUS_CHANGED,
                description=f'Status of "{title}" changed from {previous_status} to {new_status}.',
                actor_id=changed_by_id,
                team_id=team_id,
                task_id=task_id,
            ))))
            effects.append(("notifications", lambda: self.watchers.notify_watchers(
                task_id,
                WatcherEventType.STATUS_CHANGE,
                changed_by_id,
                {
                    "previous_status": previous_status,
                    "new_status": new_status,
                    "changed_by_id": str(changed_by_id),
                },
            )))
        else:
            effects.append(("activity", lambda: self.activity.create_activity(ActivityCreate(
                type=ActivityType.TASK_UPDATED,
                description=f'Task "{title}" updated.',
                actor_id=changed_by_id,
                team_id=team_id,
                task_id=task_id,
            ))))
        if "priority" in changes:
            new_priority = changes["priority"]
            effects.append(("notifications", lambda: self.watchers.notify_watchers(
                task_id,
                WatcherEventType.PRIORITY_CHANGE,
                changed_by_id,
                {
                    "previous_priority": previous_priority,
                    "new_priority": new_priority,
                    "changed_by_id": str(changed_by_id),
                },
            )))

        await run_side_effects(self.session, "task", task_id, effects)
        return task

    async def _record_status_change(
        self,
        task_id: uuid.UUID,
        previous_status: str,
        new_status: str,
        changed_by_id: uuid.UUID,
    ) -> StatusHistory:
        entry = StatusHistory(
            task_id=task_id,
            previous_status=previous_status,
            new_status=new_status,
            changed_by_id=changed_by_id,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def delete_task(self, task_id: uuid.UUID) -> None:
        """Hard delete. History, activity, comments, tags and watchers cascade."""
        task = await self.get_task_or_404(task_id)
        await self.session.delete(task)
        await self.session.commit()
        log.info("task.deleted", task_id=str(task_id))

    async def update_task_tags(self, task_id: uuid.UUID, tag_ids: Sequence[uuid.UUID]) -> list[TagRead]:
        """Replace the task's tag set."""
        await self.get_task_or_404(task_id)
        wanted = list(dict.fromkeys(tag_ids))

        tags: list[Tag] = []
        if wanted:
            result = await self.session.execute(select(Tag).where(Tag.id.in_(wanted)))
            tags = list(result.scalars().all())
            missing = set(wanted) - {t.id for t in tags}
            if missing:
                raise NotFoundError(
                    "Tag not found", tag_ids=sorted(str(m) for m in missing)
                )

        await self.session.execute(delete(TaskTag).where(TaskTag.task_id == task_id))
        for tag in tags:
            self.session.add(TaskTag(task_id=task_id, tag_id=tag.id))
        await self.session.commit()
        log.info("task.tags_updated", task_id=str(task_id), tags=len(tags))
        return [TagRead.model_validate(t) for t in sorted(tags, key=lambda t: t.name)]
