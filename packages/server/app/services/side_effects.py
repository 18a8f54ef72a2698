"""
Best-effort side channels that run after a primary mutation is committed.

Each side effect runs in its own unit of work. A failing one is rolled back
and logged, the rest still run, and a single ``SideEffectFailure`` naming the
failed channels is raised at the end. The primary mutation stays committed.
"""

from __future__ import annotations

import uuid
from typing import Awaitable, Callable, Sequence

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SideEffectFailure

log = structlog.get_logger()

SideEffect = tuple[str, Callable[[], Awaitable[object]]]


async def run_side_effects(
    session: AsyncSession,
    entity: str,
    entity_id: uuid.UUID,
    effects: Sequence[SideEffect],
) -> None:
    failed: list[str] = []
    for name, effect in effects:
        try:
            await effect()
            await session.commit()
        except (SQLAlchemyError, SideEffectFailure) as exc:
            await session.rollback()
            log.error(
                "side_effect.failed",
                entity=entity,
                entity_id=str(entity_id),
                side_effect=name,
                error=str(exc),
            )
            failed.append(name)

    if failed:
        raise SideEffectFailure(
            f"{entity} {entity_id} was saved but recording {', '.join(failed)} failed",
            entity=entity,
            entity_id=entity_id,
            side_effects=failed,
        )
