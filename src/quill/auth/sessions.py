"""Refresh-token session storage.

Learn: A user has exactly one live refresh token, stored on the users row.
The token service never trusts a refresh token just because its signature
checks out; it must also still be the stored one. swap() does the
compare-and-replace in a single conditional UPDATE, so two concurrent
rotations of the same token can't both win.
"""

import uuid
from typing import Optional, Protocol

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from quill.db.models import User


class SessionStore(Protocol):
    """What the token service needs from persistence."""

    async def store(self, user_id: uuid.UUID, token: str) -> bool:
        """Overwrite the user's refresh token. False if the user is gone."""
        ...

    async def swap(self, user_id: uuid.UUID, old: str, new: str) -> bool:
        """Replace old with new only if old is still the stored token."""
        ...

    async def clear(self, user_id: uuid.UUID) -> None:
        ...


class SqlSessionStore:
    """SessionStore backed by users.refresh_token."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def store(self, user_id: uuid.UUID, token: str) -> bool:
        return await self._set(user_id, token)

    async def swap(self, user_id: uuid.UUID, old: str, new: str) -> bool:
        return await self._set(user_id, new, expected=old)

    async def clear(self, user_id: uuid.UUID) -> None:
        await self._set(user_id, None)

    async def _set(
        self,
        user_id: uuid.UUID,
        token: Optional[str],
        expected: Optional[str] = None,
    ) -> bool:
        q = update(User).where(User.id == user_id)
        if expected is not None:
            q = q.where(User.refresh_token == expected)
        result = await self.db.execute(
            q.values(refresh_token=token).execution_options(
                synchronize_session=False
            )
        )
        await self.db.commit()
        return result.rowcount == 1
