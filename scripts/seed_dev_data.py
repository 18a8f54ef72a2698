#!/usr/bin/env python3
"""Seed a development database with users, two teams, tags, tasks and watchers.

Usage:
    python scripts/seed_dev_data.py

Uses TT_DATABASE_URL (or the default local PostgreSQL). Data is written through
the service layer so activity, history and notifications are populated too.
Running it twice is a no-op.
"""

import asyncio
from datetime import date, timedelta

import structlog
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import Database
from app.core.logging_config import configure_logging
from app.models.user import User
from app.services.activity import ActivityService
from app.services.comments import CommentService
from app.services.tags import TagService
from app.services.tasks import TaskService
from app.services.teams import TeamService
from app.services.users import UserService
from app.services.watchers import TaskWatcherService
from teamtasks_shared.schemas.common import MemberRole, TaskPriority, TaskStatus
from teamtasks_shared.schemas.tags import TagCreate
from teamtasks_shared.schemas.tasks import TaskCreate, TaskUpdate
from teamtasks_shared.schemas.teams import MemberAdd, TeamCreate
from teamtasks_shared.schemas.users import UserCreate

log = structlog.get_logger()

USERS = [
    ("alice@example.dev", "Alice", "Anders"),
    ("bob@example.dev", "Bob", "Baker"),
    ("carol@example.dev", "Carol", "Chen"),
]
TAGS = ["backend", "frontend", "bug", "docs"]
TASKS = [
    # (team index, title, priority, due in days, target status, tag names)
    (0, "Set up CI pipeline", TaskPriority.HIGH, 7, TaskStatus.IN_PROGRESS, ["backend"]),
    (0, "Fix login redirect bug", TaskPriority.HIGH, 2, TaskStatus.PENDING, ["bug", "frontend"]),
    (0, "Add health check endpoint", TaskPriority.MEDIUM, None, TaskStatus.COMPLETED, ["backend"]),
    (0, "Write contribution guide", TaskPriority.LOW, 30, TaskStatus.PENDING, ["docs"]),
    (1, "Design landing page", TaskPriority.MEDIUM, 14, TaskStatus.IN_PROGRESS, ["frontend"]),
    (1, "Drop legacy exporter", TaskPriority.LOW, None, TaskStatus.CANCELLED, []),
]

# Path through the lifecycle to each target status.
PATHS = {
    TaskStatus.PENDING: [],
    TaskStatus.IN_PROGRESS: [TaskStatus.IN_PROGRESS],
    TaskStatus.COMPLETED: [TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED],
    TaskStatus.CANCELLED: [TaskStatus.CANCELLED],
}


async def seed() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, "text")
    db = Database(settings.database_url)
    db.connect()
    if settings.create_tables_on_startup:
        await db.create_all()

    try:
        await _seed(db)
    finally:
        await db.dispose()


async def _seed(db: Database) -> None:
    async with db.session() as session:
        if (await session.execute(select(User.id).limit(1))).first():
            log.info("seed.skipped", reason="database already has users")
            return

        activity = ActivityService(session)
        watchers = TaskWatcherService(session, activity)
        users_svc = UserService(session)
        teams_svc = TeamService(session, activity)
        tags_svc = TagService(session)
        tasks_svc = TaskService(session, activity, watchers)
        comments_svc = CommentService(session, activity, watchers)

        users = [
            await users_svc.create_user(
                UserCreate(email=email, password="password", first_name=first, last_name=last)
            )
            for email, first, last in USERS
        ]
        alice, bob, carol = users

        platform = await teams_svc.create_team(
            TeamCreate(name="Platform", description="APIs and infrastructure", owner_id=alice.id)
        )
        web = await teams_svc.create_team(
            TeamCreate(name="Web", description="Browser client", owner_id=bob.id)
        )
        await teams_svc.add_member(platform.id, MemberAdd(user_id=bob.id, role=MemberRole.MEMBER, added_by_id=alice.id))
        await teams_svc.add_member(platform.id, MemberAdd(user_id=carol.id, role=MemberRole.MEMBER, added_by_id=alice.id))
        await teams_svc.add_member(web.id, MemberAdd(user_id=carol.id, role=MemberRole.MEMBER, added_by_id=bob.id))
        teams = [platform, web]

        tags = {name: await tags_svc.create_tag(TagCreate(name=name)) for name in TAGS}

        today = date.today()
        created = {}
        for team_idx, title, priority, due_in, target, tag_names in TASKS:
            team = teams[team_idx]
            task = await tasks_svc.create_task(
                TaskCreate(
                    title=title,
                    priority=priority,
                    due_date=today + timedelta(days=due_in) if due_in is not None else None,
                    team_id=team.id,
                    created_by_id=team.owner_id,
                    assigned_to_id=carol.id,
                )
            )
            created[title] = task.id
            if tag_names:
                await tasks_svc.update_task_tags(task.id, [tags[n].id for n in tag_names])
            await watchers.subscribe(task.id, carol.id)
            for step in PATHS[target]:
                await tasks_svc.update_task(task.id, TaskUpdate(status=step), team.owner_id)

        await comments_svc.create_comment(
            created["Fix login redirect bug"],
            alice.id,
            "Reproduced on Firefox; redirect drops the query string.",
        )

    log.info("seed.done", users=len(USERS), teams=2, tags=len(TAGS), tasks=len(TASKS))


if __name__ == "__main__":
    asyncio.run(seed())
