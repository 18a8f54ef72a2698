"""Tag service."""

from __future__ import annotations

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, ValidationFailed
from app.models.task import Tag
from teamtasks_shared.schemas.tags import TagCreate

log = structlog.get_logger()


class TagService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tags(self) -> list[Tag]:
        result = await self.session.execute(select(Tag).order_by(Tag.name))
        return list(result.scalars().all())

    async def create_tag(self, req: TagCreate) -> Tag:
        name = (req.name or "").strip()
        if not name:
            raise ValidationFailed("Tag name is required", field="name")

        existing = await self.session.execute(
            select(Tag.id).where(func.lower(Tag.name) == name.lower())
        )
        if existing.first():
            raise ConflictError("Tag already exists", name=name)

        tag = Tag(name=name)
        self.session.add(tag)
        await self.session.commit()
        log.info("tag.created", tag_id=str(tag.id), name=name)
        return tag
