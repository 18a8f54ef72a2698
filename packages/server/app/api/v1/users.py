"""
User endpoints. Password hashes are never returned.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_team_service, get_user_service
from app.services.teams import TeamService
from app.services.users import UserService
from teamtasks_shared.schemas.teams import TeamSummary
from teamtasks_shared.schemas.users import UserCreate, UserRead, UserUpdate

router = APIRouter()


@router.get("", response_model=List[UserRead])
async def list_users_endpoint(service: UserService = Depends(get_user_service)):
    return await service.list_users()


@router.post("", response_model=UserRead, status_code=201)
async def create_user_endpoint(body: UserCreate, service: UserService = Depends(get_user_service)):
    return await service.create_user(body)


@router.get("/{user_id}", response_model=UserRead)
async def get_user_endpoint(user_id: uuid.UUID, service: UserService = Depends(get_user_service)):
    return await service.get_user(user_id)


@router.put("/{user_id}", response_model=UserRead)
async def update_user_endpoint(
    user_id: uuid.UUID,
    body: UserUpdate,
    service: UserService = Depends(get_user_service),
):
    return await service.update_user(user_id, body)


@router.delete("/{user_id}", status_code=204)
async def delete_user_endpoint(user_id: uuid.UUID, service: UserService = Depends(get_user_service)):
    await service.delete_user(user_id)


@router.get("/{user_id}/teams", response_model=List[TeamSummary])
async def user_teams_endpoint(user_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    """Teams the user belongs to, as id/name pairs."""
    return await service.list_user_teams(user_id)
