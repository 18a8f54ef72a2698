"""
Team service: team CRUD and memberships.

Every team has exactly one owner membership, created together with the team.
Teams with pending or in-progress tasks cannot be deleted.
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, PolicyViolation
from app.models.task import Task
from app.models.team import Team, TeamMembership
from app.models.user import User
from app.services.activity import ActivityService
from app.services.side_effects import run_side_effects
from teamtasks_shared.schemas.activity import ActivityCreate
from teamtasks_shared.schemas.common import ACTIVE_TASK_STATUSES, ActivityType, MemberRole
from teamtasks_shared.schemas.teams import (
    MemberAdd,
    MembershipRead,
    TeamCreate,
    TeamRead,
    TeamSummary,
    TeamUpdate,
)
from teamtasks_shared.schemas.users import UserSummary

log = structlog.get_logger()


class TeamService:
    def __init__(self, session: AsyncSession, activity: ActivityService):
        self.session = session
        self.activity = activity

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def get_team_or_404(self, team_id: uuid.UUID) -> Team:
        team = await self.session.get(Team, team_id)
        if not team:
            raise NotFoundError("Team not found", team_id=team_id)
        return team

    async def _require_user(self, user_id: uuid.UUID) -> User:
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)
        return user

    async def enrich_teams(self, teams: Sequence[Team]) -> list[TeamRead]:
        owner_ids = {t.owner_id for t in teams}
        owners: dict[uuid.UUID, User] = {}
        if owner_ids:
            result = await self.session.execute(select(User).where(User.id.in_(owner_ids)))
            owners = {u.id: u for u in result.scalars().all()}
        return [
            TeamRead(
                id=t.id,
                name=t.name,
                description=t.description,
                owner_id=t.owner_id,
                owner=UserSummary.model_validate(owners[t.owner_id]) if t.owner_id in owners else None,
                created_at=t.created_at,
                updated_at=t.updated_at,
            )
            for t in teams
        ]

    # -----------------------------------------------------------------------
    # Teams
    # -----------------------------------------------------------------------

    async def list_teams(self) -> list[TeamRead]:
        result = await self.session.execute(select(Team).order_by(Team.name))
        return await self.enrich_teams(list(result.scalars().all()))

    async def get_team(self, team_id: uuid.UUID) -> TeamRead:
        return (await self.enrich_teams([await self.get_team_or_404(team_id)]))[0]

    async def create_team(self, req: TeamCreate) -> Team:
        await self._require_user(req.owner_id)

        team = Team(name=req.name.strip(), description=req.description, owner_id=req.owner_id)
        self.session.add(team)
        await self.session.flush()
        self.session.add(
            TeamMembership(user_id=req.owner_id, team_id=team.id, role=MemberRole.OWNER.value)
        )
        await self.session.commit()
        log.info("team.created", team_id=str(team.id), owner_id=str(req.owner_id))

        team_id, name, owner_id = team.id, team.name, team.owner_id
        await run_side_effects(
            self.session,
            "team",
            team_id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.TEAM_CREATED,
                    description=f'Team "{name}" created.',
                    actor_id=owner_id,
                    team_id=team_id,
                ))),
            ],
        )
        return team

    async def update_team(self, team_id: uuid.UUID, req: TeamUpdate) -> Team:
        team = await self.get_team_or_404(team_id)
        data = req.model_dump(exclude_unset=True)
        if data.get("name") is not None:
            data["name"] = data["name"].strip()
        elif "name" in data:
            data.pop("name")
        for key, value in data.items():
            setattr(team, key, value)
        self.session.add(team)
        await self.session.commit()
        await self.session.refresh(team)
        log.info("team.updated", team_id=str(team_id), fields=sorted(data))
        return team

    async def delete_team(self, team_id: uuid.UUID) -> None:
        """Delete a team with its tasks and memberships.

        Refused while any task is pending or in progress.
        """
        team = await self.get_team_or_404(team_id)
        active = (
            await self.session.execute(
                select(func.count())
                .select_from(Task)
                .where(
                    Task.team_id == team_id,
                    Task.status.in_([s.value for s in ACTIVE_TASK_STATUSES]),
                )
            )
        ).scalar_one()
        if active:
            raise PolicyViolation(
                "Cannot delete a team with active tasks",
                team_id=team_id,
                active_tasks=active,
            )
        await self.session.delete(team)
        await self.session.commit()
        log.info("team.deleted", team_id=str(team_id))

    # -----------------------------------------------------------------------
    # Memberships
    # -----------------------------------------------------------------------

    async def list_members(self, team_id: uuid.UUID) -> list[MembershipRead]:
        await self.get_team_or_404(team_id)
        result = await self.session.execute(
            select(TeamMembership, User)
            .join(User, User.id == TeamMembership.user_id)
            .where(TeamMembership.team_id == team_id)
            .order_by(TeamMembership.joined_at.asc())
        )
        return [
            MembershipRead(
                user_id=m.user_id,
                team_id=m.team_id,
                role=m.role,
                joined_at=m.joined_at,
                user=UserSummary.model_validate(u),
            )
            for m, u in result.all()
        ]

    async def list_user_teams(self, user_id: uuid.UUID) -> list[TeamSummary]:
        await self._require_user(user_id)
        result = await self.session.execute(
            select(Team.id, Team.name)
            .join(TeamMembership, TeamMembership.team_id == Team.id)
            .where(TeamMembership.user_id == user_id)
            .order_by(Team.name)
        )
        return [TeamSummary(id=tid, name=name) for tid, name in result.all()]

    async def add_member(self, team_id: uuid.UUID, req: MemberAdd) -> MembershipRead:
        team = await self.get_team_or_404(team_id)
        user = await self._require_user(req.user_id)
        actor_id: uuid.UUID = req.added_by_id or req.user_id
        if req.added_by_id:
            await self._require_user(req.added_by_id)

        if await self.session.get(TeamMembership, (req.user_id, team_id)):
            raise ConflictError("User is already a member of this team", team_id=team_id, user_id=req.user_id)
        if req.role == MemberRole.OWNER:
            raise PolicyViolation("A team has exactly one owner", team_id=team_id, owner_id=team.owner_id)

        membership = TeamMembership(user_id=req.user_id, team_id=team_id, role=req.role.value)
        self.session.add(membership)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                "User is already a member of this team", team_id=team_id, user_id=req.user_id
            ) from exc
        log.info("team.member_added", team_id=str(team_id), user_id=str(req.user_id), role=req.role.value)

        read = MembershipRead(
            user_id=membership.user_id,
            team_id=membership.team_id,
            role=membership.role,
            joined_at=membership.joined_at,
            user=UserSummary.model_validate(user),
        )
        name = f"{user.first_name} {user.last_name}"
        team_name = team.name
        await run_side_effects(
            self.session,
            "team_membership",
            team_id,
            [
                ("activity", lambda: self.activity.create_activity(ActivityCreate(
                    type=ActivityType.MEMBER_ADDED,
                    description=f'{name} joined team "{team_name}".',
                    actor_id=actor_id,
                    team_id=team_id,
                ))),
            ],
        )
        return read

    async def remove_member(self, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        membership: Optional[TeamMembership] = await self.session.get(TeamMembership, (user_id, team_id))
        if not membership:
            raise NotFoundError("Membership not found", team_id=team_id, user_id=user_id)
        if membership.role == MemberRole.OWNER.value:
            raise PolicyViolation("The team owner cannot be removed", team_id=team_id, user_id=user_id)
        await self.session.delete(membership)
        await self.session.commit()
        log.info("team.member_removed", team_id=str(team_id), user_id=str(user_id))
