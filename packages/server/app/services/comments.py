"""
Comment service: task discussion threads.

Creating a comment appends a ``comment_added`` activity and notifies the
task's watchers (except the author) with a ``comment`` event.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, ValidationFailed
from app.models.task import Comment, Task
from app.models.user import User
from app.services.activity import ActivityService
from app.services.side_effects import run_side_effects
from app.services.watchers import TaskWatcherService
from teamtasks_shared.schemas.activity import ActivityCreate
from teamtasks_shared.schemas.comments import CommentRead
from teamtasks_shared.schemas.common import ActivityType, WatcherEventType
from teamtasks_shared.schemas.users import UserSummary

log = structlog.get_logger()

EXCERPT_LENGTH = 140


def _clean(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Comment content is required", field="content")
    return content


class CommentService:
    def __init__(
        self,
        session: AsyncSession,
        activity: ActivityService,
        watchers: TaskWatcherService,
    ):
        self.session = session
        self.activity = activity
        self.watchers = watchers

    @staticmethod
    def to_read(comment: Comment, author: Optional[User] = None) -> CommentRead:
        return CommentRead(
            id=comment.id,
            task_id=comment.task_id,
            author_id=comment.author_id,
            author=UserSummary.model_validate(author) if author else None,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )

    async def _get_or_404(self, comment_id: uuid.UUID) -> Comment:
        comment = await self.session.get(Comment, comment_id)
        if not comment:
            raise NotFoundError("Comment not found", comment_id=comment_id)
        return comment

    async def list_for_task(self, task_id: uuid.UUID) -> list[CommentRead]:
        if not await self.session.get(Task, task_id):
            raise NotFoundError("Task not found", task_id=task_id)
        result = await self.session.execute(
            select(Comment, User)
            .outerjoin(User, User.id == Comment.author_id)
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at.asc())
        )
        return [self.to_read(c, u) for c, u in result.all()]

    async def list_all(self) -> list[CommentRead]:
        result = await self.session.execute(
            select(Comment, User)
            .outerjoin(User, User.id == Comment.author_id)
            .order_by(Comment.created_at.desc())
        )
        return [self.to_read(c, u) for c, u in result.all()]

    async def create_comment(self, task_id: uuid.UUID, author_id: uuid.UUID, content: str) -> CommentRead:
        content = _clean(content)
        task = await self.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found", task_id=task_id)
        author = await self.session.get(User, author_id)
        if not author:
            raise NotFoundError("Author not found", user_id=author_id)

        comment = Comment(task_id=task_id, author_id=author_id, content=content)
        self.session.add(comment)
        await self.session.commit()
        log.info("comment.created", comment_id=str(comment.id), task_id=str(task_id))

        read = self.to_read(comment, author)
        comment_id, title, team_id = comment.id, task.title, task.team_id
        await run_side_effects(
            self.session,
            "comment",
            comment_id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.COMMENT_ADDED,
                    description=f'Commented on task "{title}".',
                    actor_id=author_id,
                    team_id=team_id,
                    task_id=task_id,
                ))),
                ("notifications", lambda: self.watchers.notify_watchers(
                    task_id,
                    WatcherEventType.COMMENT,
                    author_id,
                    {
                        "comment_id": str(comment_id),
                        "author_id": str(author_id),
                        "excerpt": content[:EXCERPT_LENGTH],
                    },
                )),
            ],
        )
        return read

    async def update_comment(self, comment_id: uuid.UUID, content: str) -> CommentRead:
        comment = await self._get_or_404(comment_id)
        comment.content = _clean(content)
        self.session.add(comment)
        await self.session.commit()
        await self.session.refresh(comment)
        log.info("comment.updated", comment_id=str(comment_id))
        author = await self.session.get(User, comment.author_id)
        return self.to_read(comment, author)

    async def delete_comment(self, comment_id: uuid.UUID) -> None:
        comment = await self._get_or_404(comment_id)
        await self.session.delete(comment)
        await self.session.commit()
        log.info("comment.deleted", comment_id=str(comment_id))
