# SQLModel definitions, imported here so Alembic sees the full metadata.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .team import Team, TeamMembership  # noqa: F401
from .task import Task, Tag, TaskTag, Comment  # noqa: F401
from .activity import Activity, StatusHistory  # noqa: F401
from .watcher import TaskWatcher, TaskWatcherNotification  # noqa: F401
