"""Comment schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .users import UserSummary


class CommentCreate(BaseModel):
    author_id: UUID
    content: str


class CommentUpdate(BaseModel):
    content: str


class CommentRead(BaseModel):
    id: UUID
    task_id: UUID
    author_id: UUID
    author: Optional[UserSummary] = None
    content: str
    created_at: datetime
    updated_at: datetime
