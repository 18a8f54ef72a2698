"""
Integration tests for ActivityService: append and the capped feed.
"""

from __future__ import annotations

import pytest

from teamtasks_shared.schemas.activity import ActivityCreate
from teamtasks_shared.schemas.common import ActivityType


@pytest.mark.asyncio
async def test_feed_newest_first_with_relations(services, session, make_user, make_team, make_task):
    actor = await make_user("Actor")
    team = await make_team(actor)
    task = await make_task(team, actor, title="Audited")

    await services.activity.create_activity(
        ActivityCreate(type=ActivityType.TASK_CREATED, description="one", actor_id=actor.id, team_id=team.id, task_id=task.id)
    )
    await services.activity.create_activity(
        ActivityCreate(type=ActivityType.TASK_UPDATED, description="two", actor_id=actor.id, team_id=team.id, task_id=task.id)
    )
    await session.commit()

    feed = await services.activity.get_feed()
    assert [a.description for a in feed] == ["two", "one"]
    assert feed[0].actor.id == actor.id
    assert feed[0].task.title == "Audited"


@pytest.mark.asyncio
async def test_feed_filters(services, session, make_user, make_team):
    actor = await make_user("Actor")
    red = await make_team(actor, name="Red")
    blue = await make_team(actor, name="Blue")
    for team in (red, blue):
        await services.activity.create_activity(
            ActivityCreate(type=ActivityType.TEAM_CREATED, description=team.name, actor_id=actor.id, team_id=team.id)
        )
    await services.activity.create_activity(
        ActivityCreate(type=ActivityType.MEMBER_ADDED, description="joined", actor_id=actor.id, team_id=red.id)
    )
    await session.commit()

    red_feed = await services.activity.get_feed(team_id=red.id)
    assert sorted(a.description for a in red_feed) == ["Red", "joined"]

    created = await services.activity.get_feed(activity_type=ActivityType.TEAM_CREATED)
    assert sorted(a.description for a in created) == ["Blue", "Red"]

    both = await services.activity.get_feed(team_id=red.id, activity_type=ActivityType.MEMBER_ADDED)
    assert [a.description for a in both] == ["joined"]
    assert both[0].task is None


@pytest.mark.asyncio
async def test_feed_capped_at_fifty(services, session, make_user):
    actor = await make_user("Actor")
    for i in range(60):
        await services.activity.create_activity(
            ActivityCreate(type=ActivityType.TASK_UPDATED, description=str(i), actor_id=actor.id)
        )
    await session.commit()

    feed = await services.activity.get_feed()
    assert len(feed) == 50
    assert feed[0].description == "59"
