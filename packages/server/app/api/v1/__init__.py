"""
API v1 Router

Every resource is mounted under /api/v1. There is no authentication; callers
identify the acting user explicitly in request bodies or query parameters.
"""

from fastapi import APIRouter
from . import activity, comments, tags, tasks, teams, users, watchers

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(teams.router, prefix="/teams", tags=["Teams"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(comments.router, prefix="/comments", tags=["Comments"])
router.include_router(tags.router, prefix="/tags", tags=["Tags"])
router.include_router(watchers.router, prefix="/watchers", tags=["Watchers"])
router.include_router(activity.router, prefix="/activity", tags=["Activity"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/users",
            "/teams",
            "/tasks",
            "/comments",
            "/tags",
            "/watchers",
            "/activity",
        ],
    }
