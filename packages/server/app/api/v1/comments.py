"""Comment endpoints not scoped to a task. Task threads live under /tasks/{task_id}/comments."""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_comment_service
from app.services.comments import CommentService
from teamtasks_shared.schemas.comments import CommentRead, CommentUpdate

router = APIRouter()


@router.get("", response_model=List[CommentRead])
async def list_comments_endpoint(service: CommentService = Depends(get_comment_service)):
    return await service.list_all()


@router.put("/{comment_id}", response_model=CommentRead)
async def update_comment_endpoint(
    comment_id: uuid.UUID,
    body: CommentUpdate,
    service: CommentService = Depends(get_comment_service),
):
    return await service.update_comment(comment_id, body.content)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment_endpoint(
    comment_id: uuid.UUID,
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(comment_id)
