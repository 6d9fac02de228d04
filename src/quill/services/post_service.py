"""Post service — business logic for creating, listing and changing posts.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Every update and
delete goes through the OwnershipGuard, so "only the author may change
a post" is enforced by the WHERE clause, not by an if-statement.
"""

import math
import uuid
from typing import Optional, Union

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quill.auth.dependencies import CurrentIdentity
from quill.auth.ownership import MutationResult, OwnershipGuard
from quill.db.models import Post, User
from quill.errors import NotFoundError, ValidationError

logger = structlog.get_logger()

NOT_AUTHOR = "Post not found or you are not the author"

SORT_COLUMNS = {
    "createdAt": Post.created_at,
    "updatedAt": Post.updated_at,
    "title": Post.title,
}


def normalize_tags(tags: Union[list[str], str, None]) -> Optional[list[str]]:
    if tags is None:
        return None
    return [tags] if isinstance(tags, str) else list(tags)


class PostService:
    """Business logic for posts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.guard = OwnershipGuard(Post, Post.author_id)

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        sort: str = "createdAt",
        order: str = "desc",
        author_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Post], dict]:
        """One page of posts plus the pagination block.

        Returns (posts, {"page", "limit", "total", "pages"}).
        """
        column = SORT_COLUMNS[sort]
        ordering = column.desc() if order == "desc" else column.asc()

        q = select(Post)
        count_q = select(func.count()).select_from(Post)
        if author_id is not None:
            q = q.where(Post.author_id == author_id)
            count_q = count_q.where(Post.author_id == author_id)

        result = await self.db.execute(
            q.order_by(ordering, Post.id).offset((page - 1) * limit).limit(limit)
        )
        posts = list(result.scalars().all())
        total = await self.db.scalar(count_q) or 0

        return posts, {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        }

    async def get_post(self, post_id: uuid.UUID) -> Post:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post ID not found")
        return post

    async def create_post(
        self,
        identity: CurrentIdentity,
        title: Optional[str],
        body: Optional[str],
        tags: Union[list[str], str, None] = None,
        cover_image_url: Optional[str] = None,
    ) -> Post:
        if not title or not body:
            raise ValidationError("title and body needed")

        # The token may outlive its account; don't create an orphan.
        if await self.db.get(User, identity.user_id) is None:
            raise NotFoundError("User not found")

        post = Post(
            title=title,
            body=body,
            author_id=identity.user_id,
            tags=normalize_tags(tags),
            cover_image_url=cover_image_url or None,
        )
        self.db.add(post)
        await self.db.commit()

        logger.info("posts.created", post_id=str(post.id))
        return post

    async def update_post(
        self,
        identity: CurrentIdentity,
        post_id: uuid.UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
        tags: Union[list[str], str, None] = None,
        cover_image_url: Optional[str] = None,
    ) -> MutationResult:
        """Change the given fields of the caller's post.

        Empty values are treated as "not given". Returns UPDATED or
        UNCHANGED; a post that is missing or someone else's raises 404.
        """
        changes = {}
        if title:
            changes["title"] = title
        if body:
            changes["body"] = body
        if tags is not None and tags != "":
            changes["tags"] = normalize_tags(tags)
        if cover_image_url:
            changes["cover_image_url"] = cover_image_url

        if not changes:
            raise ValidationError("No fields to update")

        outcome = await self.guard.update(self.db, post_id, identity, changes)
        if outcome is MutationResult.NOT_FOUND:
            raise NotFoundError(NOT_AUTHOR)

        logger.info("posts.updated", post_id=str(post_id), outcome=outcome.value)
        return outcome

    async def delete_post(self, identity: CurrentIdentity, post_id: uuid.UUID) -> None:
        if not await self.guard.delete(self.db, post_id, identity):
            raise NotFoundError(NOT_AUTHOR)
        logger.info("posts.deleted", post_id=str(post_id))
