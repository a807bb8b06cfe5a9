# src/pitchcoach_backend/app/db/user_store.py

import uuid
from typing import Any, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User


class UserStore(Protocol):
    """The four user-record operations the identity resolver needs."""

    async def find_by_oauth_identity(self, provider: str, oauth_id: str) -> Optional[User]: ...

    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def create(self, **fields: Any) -> User: ...

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User: ...

    async def rollback(self) -> None: ...


class SqlAlchemyUserStore:
    """
    UserStore over an AsyncSession.

    Every write is its own commit: callers see each step of the
    resolution persisted before the next one runs. A failed commit is rolled
    back (so the session stays usable) and the original error re-raised.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_oauth_identity(self, provider: str, oauth_id: str) -> Optional[User]:
        stmt = select(User).where(
            User.oauth_provider == provider,
            User.oauth_id == oauth_id,
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.db.add(user)
        await self._commit()
        await self.db.refresh(user)
        return user

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")
        for key, value in fields.items():
            setattr(user, key, value)
        await self._commit()
        await self.db.refresh(user)
        return user

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
