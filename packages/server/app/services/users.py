"""
User management service: business logic for user CRUD and password storage.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, PolicyViolation
from app.core.config import get_settings
from app.core.security import hash_password
from app.models.team import Team
from app.models.user import User
from teamtasks_shared.schemas.users import UserCreate, UserUpdate

log = structlog.get_logger()


class UserService:
    def __init__(self, session: AsyncSession, bcrypt_rounds: Optional[int] = None):
        self.session = session
        self.bcrypt_rounds = bcrypt_rounds if bcrypt_rounds is not None else get_settings().bcrypt_rounds

    async def _ensure_email_free(self, email: str, exclude_id: uuid.UUID | None = None) -> None:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id:
            stmt = stmt.where(User.id != exclude_id)
        if (await self.session.execute(stmt)).first():
            raise ConflictError("A user with this email already exists", email=email)

    async def list_users(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.last_name, User.first_name))
        return list(result.scalars().all())

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)
        return user

    async def create_user(self, req: UserCreate) -> User:
        email = str(req.email)
        await self._ensure_email_free(email)

        user = User(
            email=email,
            first_name=req.first_name.strip(),
            last_name=req.last_name.strip(),
            password_hash=hash_password(req.password, self.bcrypt_rounds),
        )
        self.session.add(user)
        await self.session.commit()
        log.info("user.created", user_id=str(user.id))
        return user

    async def update_user(self, user_id: uuid.UUID, req: UserUpdate) -> User:
        user = await self.get_user(user_id)
        data = req.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in data:
            data["email"] = str(data["email"])
            await self._ensure_email_free(data["email"], exclude_id=user_id)
        if "password" in data:
            data["password_hash"] = hash_password(data.pop("password"), self.bcrypt_rounds)

        for key, value in data.items():
            setattr(user, key, value.strip() if key in ("first_name", "last_name") else value)

        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        log.info("user.updated", user_id=str(user_id), fields=sorted(data))
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Delete a user. Team owners must delete their teams first.

        Memberships, comments, watchers and notifications cascade.
        """
        user = await self.get_user(user_id)
        owned = await self.session.execute(select(Team.id).where(Team.owner_id == user_id))
        if owned.first():
            raise PolicyViolation("User owns teams and cannot be deleted", user_id=user_id)
        await self.session.delete(user)
        await self.session.commit()
        log.info("user.deleted", user_id=str(user_id))
