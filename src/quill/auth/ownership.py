"""Ownership-scoped mutations.

Learn: Every update or delete of a user-owned row goes through a filter
that pins BOTH the row id and its owner column to the caller. The row is
never fetched first and checked in Python; the database applies the
filter in the same statement that mutates.

When nothing matches, the caller gets NOT_FOUND whether the row is missing
or belongs to someone else. That is deliberate: a 403 would confirm that
another user's resource exists.
"""

import enum
import uuid
from typing import Any

from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quill.auth.dependencies import CurrentIdentity
from quill.db.models import utcnow
from quill.errors import ValidationError

INVALID_ID = "Invalid ID"


def parse_resource_id(raw: str) -> uuid.UUID:
    """Parse a path id, failing fast with 400 before any query runs."""
    try:
        return uuid.UUID(str(raw))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(INVALID_ID)


class MutationResult(enum.Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"  # matched the filter, every field already had that value
    NOT_FOUND = "not_found"  # missing or not the caller's


class OwnershipGuard:
    """Builds id + owner filters for one model and runs mutations under them."""

    def __init__(self, model, owner_column):
        self.model = model
        self.owner_column = owner_column

    def filter(self, resource_id: uuid.UUID, identity: CurrentIdentity) -> list:
        return [
            self.model.id == resource_id,
            self.owner_column == identity.user_id,
        ]

    async def update(
        self,
        db: AsyncSession,
        resource_id: uuid.UUID,
        identity: CurrentIdentity,
        changes: dict[str, Any],
    ) -> MutationResult:
        """Apply changes to the caller's row.

        Learn: The UPDATE only matches when at least one column actually
        differs (IS DISTINCT FROM, so NULLs compare sanely). Zero rows then
        means either "nothing to change" or "not yours"; a second guarded
        existence check tells them apart. UNCHANGED is only reported when
        that check passes, so non-owners always see NOT_FOUND.
        """
        if not changes:
            raise ValueError("update() needs at least one field")
        conditions = self.filter(resource_id, identity)
        differs = [
            getattr(self.model, field).is_distinct_from(value)
            for field, value in changes.items()
        ]

        result = await db.execute(
            update(self.model)
            .where(*conditions, or_(*differs))
            .values(**changes, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await db.commit()
            return MutationResult.UPDATED

        owned = await db.scalar(select(exists().where(*conditions)))
        return MutationResult.UNCHANGED if owned else MutationResult.NOT_FOUND

    async def delete(
        self,
        db: AsyncSession,
        resource_id: uuid.UUID,
        identity: CurrentIdentity,
    ) -> bool:
        """Delete the caller's row. False if nothing matched."""
        result = await db.execute(
            delete(self.model)
            .where(*self.filter(resource_id, identity))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1
