"""Tag endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_tag_service
from app.services.tags import TagService
from teamtasks_shared.schemas.tags import TagCreate, TagRead

router = APIRouter()


@router.get("", response_model=List[TagRead])
async def list_tags_endpoint(service: TagService = Depends(get_tag_service)):
    return await service.list_tags()


@router.post("", response_model=TagRead, status_code=201)
async def create_tag_endpoint(body: TagCreate, service: TagService = Depends(get_tag_service)):
    return await service.create_tag(body)
