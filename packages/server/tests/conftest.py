"""
Shared fixtures: an in-memory SQLite database per test, services bound to one
session, and an HTTP client against an app using the same database.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.models.task import Task
from app.models.team import Team, TeamMembership
from app.models.user import User
from app.services.activity import ActivityService
from app.services.comments import CommentService
from app.services.tags import TagService
from app.services.tasks import TaskService
from app.services.teams import TeamService
from app.services.users import UserService
from app.services.watchers import TaskWatcherService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        bcrypt_rounds=4,
        log_format="text",
        log_level="warning",
    )


@pytest.fixture
async def db():
    database = Database(TEST_DATABASE_URL)
    database.connect()
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def session(db: Database):
    async with db.session() as s:
        yield s


@pytest.fixture
def services(session, settings: Settings) -> SimpleNamespace:
    activity = ActivityService(session, feed_limit=settings.activity_feed_limit)
    watchers = TaskWatcherService(session, activity, max_watchers_per_task=settings.max_watchers_per_task)
    return SimpleNamespace(
        activity=activity,
        watchers=watchers,
        tasks=TaskService(session, activity, watchers, max_page_size=settings.max_page_size),
        comments=CommentService(session, activity, watchers),
        teams=TeamService(session, activity),
        users=UserService(session, bcrypt_rounds=settings.bcrypt_rounds),
        tags=TagService(session),
    )


@pytest.fixture
async def client(db: Database, settings: Settings):
    app = create_app(settings=settings, database=db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Row factories (direct inserts, no side effects)
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(session):
    async def _make(first_name: str = "Test", last_name: Optional[str] = None) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=f"{first_name.lower()}.{suffix}@example.com",
            first_name=first_name,
            last_name=last_name or suffix,
            password_hash="not-a-real-hash",
        )
        session.add(user)
        await session.commit()
        return user

    return _make


@pytest.fixture
def make_team(session):
    async def _make(owner: User, members: tuple = (), name: str = "Team") -> Team:
        team = Team(name=name, owner_id=owner.id)
        session.add(team)
        await session.flush()
        session.add(TeamMembership(user_id=owner.id, team_id=team.id, role="owner"))
        for member in members:
            session.add(TeamMembership(user_id=member.id, team_id=team.id, role="member"))
        await session.commit()
        return team

    return _make


@pytest.fixture
def make_task(session):
    async def _make(
        team: Team,
        creator: User,
        title: str = "Task",
        status: str = "pending",
        priority: str = "medium",
        due_date: Optional[date] = None,
    ) -> Task:
        task = Task(
            team_id=team.id,
            title=title,
            status=status,
            priority=priority,
            due_date=due_date,
            created_by_id=creator.id,
        )
        session.add(task)
        await session.commit()
        return task

    return _make


@pytest.fixture
def yesterday() -> date:
    return datetime.now(timezone.utc).date() - timedelta(days=1)
