"""
Team endpoints: CRUD and memberships.

A team with pending or in-progress tasks cannot be deleted (422).
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_team_service
from app.services.teams import TeamService
from teamtasks_shared.schemas.teams import (
    MemberAdd,
    MembershipRead,
    TeamCreate,
    TeamRead,
    TeamUpdate,
)

router = APIRouter()


@router.get("", response_model=List[TeamRead])
async def list_teams_endpoint(service: TeamService = Depends(get_team_service)):
    return await service.list_teams()


@router.post("", response_model=TeamRead, status_code=201)
async def create_team_endpoint(body: TeamCreate, service: TeamService = Depends(get_team_service)):
    """Create a team. The owner becomes its first member with role ``owner``."""
    team = await service.create_team(body)
    return (await service.enrich_teams([team]))[0]


@router.get("/{team_id}", response_model=TeamRead)
async def get_team_endpoint(team_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    return await service.get_team(team_id)


@router.put("/{team_id}", response_model=TeamRead)
async def update_team_endpoint(
    team_id: uuid.UUID,
    body: TeamUpdate,
    service: TeamService = Depends(get_team_service),
):
    team = await service.update_team(team_id, body)
    return (await service.enrich_teams([team]))[0]


@router.delete("/{team_id}", status_code=204)
async def delete_team_endpoint(team_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    await service.delete_team(team_id)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{team_id}/members", response_model=List[MembershipRead])
async def list_members_endpoint(team_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    return await service.list_members(team_id)


@router.post("/{team_id}/members", response_model=MembershipRead, status_code=201)
async def add_member_endpoint(
    team_id: uuid.UUID,
    body: MemberAdd,
    service: TeamService = Depends(get_team_service),
):
    return await service.add_member(team_id, body)


@router.delete("/{team_id}/members/{user_id}", status_code=204)
async def remove_member_endpoint(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    service: TeamService = Depends(get_team_service),
):
    await service.remove_member(team_id, user_id)
