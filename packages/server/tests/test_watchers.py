"""
Integration tests for TaskWatcherService.

Tests cover:
- Subscribe policies: membership, idempotency, the 50-watcher cap
- Notification fan-out never reaches the actor
- Watchlist with derived overdue flag
- Mark-as-read scoped to the caller's own notifications
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.errors import NotFoundError, PolicyViolation
from app.models.activity import Activity
from app.models.watcher import TaskWatcher, TaskWatcherNotification
from app.services.watchers import is_overdue
from teamtasks_shared.schemas.common import TaskStatus, WatcherEventType
from teamtasks_shared.schemas.tasks import TaskUpdate


async def _watcher_count(session, task_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(TaskWatcher).where(TaskWatcher.task_id == task_id)
    )
    return result.scalar_one()


@pytest.fixture
async def setup(make_user, make_team, make_task):
    u1 = await make_user("Uma")
    u2 = await make_user("Vic")
    team = await make_team(u1, members=(u2,))
    task = await make_task(team, u1, title="Task A")
    return u1, u2, team, task


class TestIsOverdue:
    def test_no_due_date(self):
        assert not is_overdue(None, "pending")

    def test_past_due_not_completed(self):
        today = date(2026, 5, 10)
        assert is_overdue(date(2026, 5, 9), "pending", today)
        assert is_overdue(date(2026, 5, 9), "cancelled", today)

    def test_completed_never_overdue(self):
        assert not is_overdue(date(2000, 1, 1), "completed", date(2026, 5, 10))

    def test_due_today_not_overdue(self):
        today = date(2026, 5, 10)
        assert not is_overdue(today, "pending", today)


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_subscribe_is_idempotent(self, services, session, setup):
        _, u2, _, task = setup
        first, created = await services.watchers.subscribe(task.id, u2.id)
        assert created
        second, created_again = await services.watchers.subscribe(task.id, u2.id)
        assert not created_again
        assert second.id == first.id
        assert await _watcher_count(session, task.id) == 1

        types = (await session.execute(select(Activity.type).where(Activity.task_id == task.id))).scalars().all()
        assert list(types) == ["watcher_added"]

    @pytest.mark.asyncio
    async def test_missing_task_or_user(self, services, setup):
        u1, _, _, task = setup
        with pytest.raises(NotFoundError):
            await services.watchers.subscribe(uuid.uuid4(), u1.id)
        with pytest.raises(NotFoundError):
            await services.watchers.subscribe(task.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, services, session, setup, make_user):
        _, _, _, task = setup
        outsider = await make_user("Out")
        with pytest.raises(PolicyViolation):
            await services.watchers.subscribe(task.id, outsider.id)
        assert await _watcher_count(session, task.id) == 0

    @pytest.mark.asyncio
    async def test_cap_of_fifty(self, services, session, settings, make_user, make_team, make_task):
        cap = settings.max_watchers_per_task
        assert cap == 50
        owner = await make_user("Owner")
        members = [await make_user(f"M{i}") for i in range(cap)]
        team = await make_team(owner, members=tuple(members))
        task = await make_task(team, owner)

        for member in members:
            await services.watchers.subscribe(task.id, member.id)
        assert await _watcher_count(session, task.id) == cap

        with pytest.raises(PolicyViolation) as exc:
            await services.watchers.subscribe(task.id, owner.id)
        assert exc.value.context["max_watchers"] == cap
        assert await _watcher_count(session, task.id) == cap

        # Existing subscriptions are still returned at the cap.
        _, created = await services.watchers.subscribe(task.id, members[0].id)
        assert not created

    @pytest.mark.asyncio
    async def test_unsubscribe(self, services, session, setup):
        u1, u2, _, task = setup
        await services.watchers.unsubscribe(task.id, u1.id)  # no-op

        await services.watchers.subscribe(task.id, u2.id)
        await services.watchers.unsubscribe(task.id, u2.id)
        assert await _watcher_count(session, task.id) == 0

        types = (
            await session.execute(
                select(Activity.type).where(Activity.task_id == task.id).order_by(Activity.created_at)
            )
        ).scalars().all()
        assert list(types) == ["watcher_added", "watcher_removed"]

    @pytest.mark.asyncio
    async def test_list_watchers(self, services, setup):
        u1, u2, _, task = setup
        await services.watchers.subscribe(task.id, u2.id)
        await services.watchers.subscribe(task.id, u1.id)
        watchers = await services.watchers.get_watchers_by_task(task.id)
        assert [w.user_id for w in watchers] == [u2.id, u1.id]
        assert watchers[0].user.first_name == "Vic"


class TestNotifications:
    @pytest.mark.asyncio
    async def test_actor_never_notified(self, services, session, setup):
        u1, u2, _, task = setup
        await services.watchers.subscribe(task.id, u1.id)
        await services.watchers.subscribe(task.id, u2.id)

        created = await services.watchers.notify_watchers(
            task.id, WatcherEventType.STATUS_CHANGE, u1.id, {"new_status": "in_progress"}
        )
        await session.commit()

        assert [n.user_id for n in created] == [u2.id]
        assert len({n.created_at for n in created}) == 1

    @pytest.mark.asyncio
    async def test_no_watchers_is_noop(self, services, setup):
        u1, _, _, task = setup
        assert await services.watchers.notify_watchers(task.id, WatcherEventType.COMMENT, u1.id) == []

    @pytest.mark.asyncio
    async def test_comment_scenario(self, services, session, setup):
        """U2 watches; U1 (not a watcher) comments → exactly one notification, for U2."""
        u1, u2, _, task = setup
        await services.watchers.subscribe(task.id, u2.id)

        comment = await services.comments.create_comment(task.id, u1.id, "Looks good")

        notes = (await session.execute(select(TaskWatcherNotification))).scalars().all()
        assert len(notes) == 1
        assert notes[0].user_id == u2.id
        assert notes[0].event_type == "comment"
        assert notes[0].payload["comment_id"] == str(comment.id)

        inbox = await services.watchers.get_notifications(u1.id)
        assert inbox == []

    @pytest.mark.asyncio
    async def test_mark_read_only_touches_own(self, services, session, setup, make_user):
        u1, u2, team, task = setup
        await services.watchers.subscribe(task.id, u1.id)
        await services.watchers.subscribe(task.id, u2.id)
        third = await make_user("Third")

        await services.watchers.notify_watchers(task.id, WatcherEventType.COMMENT, third.id)
        await session.commit()

        u1_notes = await services.watchers.get_notifications(u1.id)
        u2_notes = await services.watchers.get_notifications(u2.id)
        assert len(u1_notes) == len(u2_notes) == 1

        marked = await services.watchers.mark_notifications_as_read(
            u1.id, [u1_notes[0].id, u2_notes[0].id]
        )
        assert marked == 1

        assert (await services.watchers.get_notifications(u1.id))[0].read_at is not None
        assert (await services.watchers.get_notifications(u2.id))[0].read_at is None
        assert await services.watchers.get_notifications(u1.id, unread_only=True) == []
        assert len(await services.watchers.get_notifications(u2.id, unread_only=True)) == 1

        # Already-read notifications are not re-stamped.
        assert await services.watchers.mark_notifications_as_read(u1.id, [u1_notes[0].id]) == 0


class TestWatchlist:
    @pytest.mark.asyncio
    async def test_overdue_scenario(self, services, session, setup, make_task, yesterday):
        u1, u2, team, _ = setup
        task = await make_task(team, u1, title="Late", due_date=yesterday)
        await services.watchers.subscribe(task.id, u2.id)

        page = await services.watchers.get_watchlist(u2.id)
        assert page.total == 1
        item = page.data[0]
        assert item.task_id == task.id
        assert item.team_name == team.name
        assert item.is_overdue is True

        await services.tasks.update_task(task.id, TaskUpdate(status=TaskStatus.IN_PROGRESS), u1.id)
        await services.tasks.update_task(task.id, TaskUpdate(status=TaskStatus.COMPLETED), u1.id)

        page = await services.watchers.get_watchlist(u2.id)
        assert page.data[0].is_overdue is False

    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, services, setup, make_task, make_team):
        u1, u2, team, task = setup
        other = await make_team(u1, members=(u2,), name="Other")
        t2 = await make_task(team, u1, title="B", status="in_progress")
        t3 = await make_task(other, u1, title="C")
        for t in (task, t2, t3):
            await services.watchers.subscribe(t.id, u2.id)

        assert (await services.watchers.get_watchlist(u1.id)).total == 0

        page = await services.watchers.get_watchlist(u2.id, page=1, limit=2)
        assert page.total == 3
        assert page.total_pages == 2
        assert len(page.data) == 2

        by_status = await services.watchers.get_watchlist(u2.id, status=TaskStatus.IN_PROGRESS)
        assert [i.title for i in by_status.data] == ["B"]

        by_team = await services.watchers.get_watchlist(u2.id, team_id=other.id)
        assert [i.title for i in by_team.data] == ["C"]

    @pytest.mark.asyncio
    async def test_future_due_date_not_overdue(self, services, setup, make_task):
        u1, u2, team, _ = setup
        task = await make_task(team, u1, due_date=date.today() + timedelta(days=5))
        await services.watchers.subscribe(task.id, u2.id)
        page = await services.watchers.get_watchlist(u2.id)
        assert page.data[0].is_overdue is False
