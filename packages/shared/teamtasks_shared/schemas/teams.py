"""Team and membership schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .common import MemberRole
from .users import UserSummary


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    owner_id: UUID


class TeamUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class TeamRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    owner_id: UUID
    owner: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class TeamSummary(BaseModel):
    """Id/name pair used by the client's team filter."""
    id: UUID
    name: str


class MemberAdd(BaseModel):
    user_id: UUID
    role: MemberRole = MemberRole.MEMBER
    added_by_id: Optional[UUID] = None  # defaults to the added user


class MembershipRead(BaseModel):
    user_id: UUID
    team_id: UUID
    role: MemberRole
    joined_at: datetime
    user: Optional[UserSummary] = None
