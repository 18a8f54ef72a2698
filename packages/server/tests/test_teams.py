"""
Integration tests for TeamService: team CRUD, deletion policy, memberships.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, PolicyViolation
from app.models.activity import Activity
from app.models.task import Task
from app.models.team import Team, TeamMembership
from teamtasks_shared.schemas.common import MemberRole
from teamtasks_shared.schemas.teams import MemberAdd, TeamCreate, TeamUpdate


class TestTeams:
    @pytest.mark.asyncio
    async def test_create_team_adds_owner_membership_and_activity(self, services, session, make_user):
        owner = await make_user("Owner")
        team = await services.teams.create_team(TeamCreate(name=" Core ", owner_id=owner.id))
        assert team.name == "Core"

        members = await services.teams.list_members(team.id)
        assert [(m.user_id, m.role) for m in members] == [(owner.id, MemberRole.OWNER)]

        types = (await session.execute(select(Activity.type).where(Activity.team_id == team.id))).scalars().all()
        assert list(types) == ["team_created"]

    @pytest.mark.asyncio
    async def test_create_team_missing_owner(self, services):
        with pytest.raises(NotFoundError):
            await services.teams.create_team(TeamCreate(name="X", owner_id=uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_update_and_read(self, services, make_user, make_team):
        owner = await make_user("Owner")
        team = await make_team(owner, name="Old")
        await services.teams.update_team(team.id, TeamUpdate(description="Now described"))
        read = await services.teams.get_team(team.id)
        assert read.name == "Old"
        assert read.description == "Now described"
        assert read.owner.id == owner.id

        listed = await services.teams.list_teams()
        assert [t.id for t in listed] == [team.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "in_progress"])
    async def test_delete_blocked_by_active_tasks(self, services, session, make_user, make_team, make_task, status):
        owner = await make_user("Owner")
        team = await make_team(owner)
        await make_task(team, owner, status=status)
        with pytest.raises(PolicyViolation):
            await services.teams.delete_team(team.id)
        assert await session.get(Team, team.id) is not None

    @pytest.mark.asyncio
    async def test_delete_cascades_when_no_active_tasks(self, services, session, make_user, make_team, make_task):
        owner = await make_user("Owner")
        member = await make_user("Member")
        team = await make_team(owner, members=(member,))
        team_id = team.id
        await make_task(team, owner, status="completed")
        await make_task(team, owner, status="cancelled")

        await services.teams.delete_team(team_id)

        for model, col in ((Task, Task.team_id), (TeamMembership, TeamMembership.team_id)):
            count = (await session.execute(select(func.count()).select_from(model).where(col == team_id))).scalar_one()
            assert count == 0
        with pytest.raises(NotFoundError):
            await services.teams.get_team(team_id)


class TestMemberships:
    @pytest.mark.asyncio
    async def test_add_member(self, services, session, make_user, make_team):
        owner = await make_user("Owner")
        newcomer = await make_user("New")
        team = await make_team(owner)

        membership = await services.teams.add_member(team.id, MemberAdd(user_id=newcomer.id, added_by_id=owner.id))
        assert membership.role == MemberRole.MEMBER
        assert membership.user.id == newcomer.id

        activity = (
            await session.execute(select(Activity).where(Activity.type == "member_added"))
        ).scalar_one()
        assert activity.actor_id == owner.id
        assert activity.team_id == team.id

        with pytest.raises(ConflictError):
            await services.teams.add_member(team.id, MemberAdd(user_id=newcomer.id))

    @pytest.mark.asyncio
    async def test_add_member_errors(self, services, make_user, make_team):
        owner = await make_user("Owner")
        other = await make_user("Other")
        team = await make_team(owner)
        with pytest.raises(NotFoundError):
            await services.teams.add_member(uuid.uuid4(), MemberAdd(user_id=other.id))
        with pytest.raises(NotFoundError):
            await services.teams.add_member(team.id, MemberAdd(user_id=uuid.uuid4()))
        with pytest.raises(PolicyViolation):
            await services.teams.add_member(team.id, MemberAdd(user_id=other.id, role=MemberRole.OWNER))

    @pytest.mark.asyncio
    async def test_remove_member(self, services, make_user, make_team):
        owner = await make_user("Owner")
        member = await make_user("Member")
        team = await make_team(owner, members=(member,))

        await services.teams.remove_member(team.id, member.id)
        assert [m.user_id for m in await services.teams.list_members(team.id)] == [owner.id]

        with pytest.raises(NotFoundError):
            await services.teams.remove_member(team.id, member.id)
        with pytest.raises(PolicyViolation):
            await services.teams.remove_member(team.id, owner.id)

    @pytest.mark.asyncio
    async def test_list_user_teams(self, services, make_user, make_team):
        owner = await make_user("Owner")
        member = await make_user("Member")
        beta = await make_team(owner, members=(member,), name="Beta")
        alpha = await make_team(member, name="Alpha")
        await make_team(owner, name="Gamma")

        teams = await services.teams.list_user_teams(member.id)
        assert [(t.id, t.name) for t in teams] == [(alpha.id, "Alpha"), (beta.id, "Beta")]

        with pytest.raises(NotFoundError):
            await services.teams.list_user_teams(uuid.uuid4())
