"""
Integration tests for the comment, tag and user services.
"""

from __future__ import annotations

import uuid

import pytest
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, PolicyViolation, ValidationFailed
from app.core.security import verify_password
from app.models.activity import Activity
from app.models.task import Comment
from app.models.user import User
from teamtasks_shared.schemas.tags import TagCreate
from teamtasks_shared.schemas.users import UserCreate, UserUpdate


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class TestComments:
    @pytest.mark.asyncio
    async def test_create_list_update_delete(self, services, session, make_user, make_team, make_task):
        author = await make_user("Author")
        team = await make_team(author)
        task = await make_task(team, author)

        first = await services.comments.create_comment(task.id, author.id, "  first  ")
        second = await services.comments.create_comment(task.id, author.id, "second")
        assert first.content == "first"
        assert first.author.id == author.id

        thread = await services.comments.list_for_task(task.id)
        assert [c.id for c in thread] == [first.id, second.id]
        assert [c.id for c in await services.comments.list_all()] == [second.id, first.id]

        edited = await services.comments.update_comment(first.id, "edited")
        assert edited.content == "edited"

        await services.comments.delete_comment(second.id)
        assert await session.get(Comment, second.id) is None

        types = (await session.execute(select(Activity.type).where(Activity.task_id == task.id))).scalars().all()
        assert list(types) == ["comment_added", "comment_added"]

    @pytest.mark.asyncio
    async def test_validation_and_missing(self, services, make_user, make_team, make_task):
        author = await make_user("Author")
        team = await make_team(author)
        task = await make_task(team, author)
        with pytest.raises(ValidationFailed):
            await services.comments.create_comment(task.id, author.id, "   ")
        with pytest.raises(NotFoundError):
            await services.comments.create_comment(uuid.uuid4(), author.id, "hi")
        with pytest.raises(NotFoundError):
            await services.comments.create_comment(task.id, uuid.uuid4(), "hi")
        with pytest.raises(NotFoundError):
            await services.comments.update_comment(uuid.uuid4(), "hi")
        with pytest.raises(NotFoundError):
            await services.comments.delete_comment(uuid.uuid4())
        with pytest.raises(NotFoundError):
            await services.comments.list_for_task(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_excerpt_is_truncated(self, services, session, make_user, make_team, make_task):
        author = await make_user("Author")
        watcher = await make_user("Watcher")
        team = await make_team(author, members=(watcher,))
        task = await make_task(team, author)
        await services.watchers.subscribe(task.id, watcher.id)

        await services.comments.create_comment(task.id, author.id, "x" * 500)

        inbox = await services.watchers.get_notifications(watcher.id)
        assert len(inbox[0].payload["excerpt"]) == 140


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TestTags:
    @pytest.mark.asyncio
    async def test_create_and_list_sorted(self, services):
        await services.tags.create_tag(TagCreate(name=" zeta "))
        await services.tags.create_tag(TagCreate(name="alpha"))
        assert [t.name for t in await services.tags.list_tags()] == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_duplicate_is_case_insensitive(self, services):
        await services.tags.create_tag(TagCreate(name="Bug"))
        with pytest.raises(ConflictError):
            await services.tags.create_tag(TagCreate(name="bug"))

    @pytest.mark.asyncio
    async def test_blank_rejected(self, services):
        with pytest.raises(ValidationFailed):
            await services.tags.create_tag(TagCreate(name="  "))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    @pytest.mark.asyncio
    async def test_create_hashes_password(self, services):
        user = await services.users.create_user(
            UserCreate(email="ada@example.com", password="s3cret", first_name="Ada", last_name="Lovelace")
        )
        assert user.password_hash != "s3cret"
        assert verify_password("s3cret", user.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, services):
        req = UserCreate(email="dup@example.com", password="pw", first_name="A", last_name="B")
        await services.users.create_user(req)
        with pytest.raises(ConflictError):
            await services.users.create_user(req)

    @pytest.mark.asyncio
    async def test_update(self, services, make_user):
        user = await make_user("Old")
        other = await make_user("Other")
        updated = await services.users.update_user(user.id, UserUpdate(first_name="New", password="changed"))
        assert updated.first_name == "New"
        assert verify_password("changed", updated.password_hash)

        with pytest.raises(ConflictError):
            await services.users.update_user(user.id, UserUpdate(email=other.email))

    @pytest.mark.asyncio
    async def test_delete(self, services, session, make_user, make_team):
        owner = await make_user("Owner")
        plain = await make_user("Plain")
        await make_team(owner, members=(plain,))

        with pytest.raises(PolicyViolation):
            await services.users.delete_user(owner.id)

        await services.users.delete_user(plain.id)
        assert (await session.execute(select(User.id).where(User.id == plain.id))).first() is None
        with pytest.raises(NotFoundError):
            await services.users.get_user(plain.id)
