"""User service — accounts, sign-in sessions and profiles.

Learn: Sign-up and sign-in are the only places a plaintext password is
seen; it is hashed (or verified) and then dropped. Sign-in and refresh
both end with the new refresh token written over the stored one, so
there is never more than one live refresh token per user.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from quill.auth.dependencies import CurrentIdentity
from quill.auth.jwt import InvalidRefreshTokenError, TokenPair, TokenService
from quill.auth.ownership import MutationResult, OwnershipGuard
from quill.auth.password import hash_password, needs_upgrade, verify_password
from quill.db.models import BIO_MAX_LENGTH, Post, User
from quill.errors import AuthenticationError, NotFoundError, ValidationError
from quill.services.post_service import PostService

logger = structlog.get_logger()

USER_NOT_FOUND = "User not found"
ALREADY_EXISTS = "Already exist"


class UserService:
    """Business logic for accounts and sessions."""

    def __init__(self, db: AsyncSession, tokens: TokenService):
        self.db = db
        self.tokens = tokens
        # A user "owns" exactly its own row.
        self.guard = OwnershipGuard(User, User.id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    # ─── Sign-up / sign-in ──────────────────────────────

    async def sign_up(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> User:
        """Create an account.

        Learn: The lookup catches the common duplicate case with a clear
        400. Two concurrent sign-ups can both pass it; the unique index on
        email then rejects the second insert, which gets the same 400.
        """
        if not email:
            raise ValidationError("Missing email")
        if not password:
            raise ValidationError("Missing password")

        if await self.get_by_email(email):
            logger.info("auth.signup_rejected", reason="exists")
            raise ValidationError(ALREADY_EXISTS)

        # argon2 burns ~100ms of CPU per call; run it in a worker thread.
        password_hash = await run_in_threadpool(hash_password, password)
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("auth.signup_rejected", reason="race")
            raise ValidationError(ALREADY_EXISTS)

        logger.info("auth.signed_up", user_id=str(user.id))
        return user

    async def sign_in(self, email: Optional[str], password: Optional[str]) -> TokenPair:
        if not email:
            raise ValidationError("Missing email")
        if not password:
            raise ValidationError("Missing password")

        user = await self.get_by_email(email)
        if user is None:
            logger.info("auth.signin_failed", reason="unknown_email")
            raise AuthenticationError("User doesn't exist")

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("auth.signin_failed", reason="password", user_id=str(user.id))
            raise AuthenticationError("Wrong Password")

        # Auto-upgrade legacy bcrypt (or outdated argon2) hashes
        if needs_upgrade(user.password_hash):
            user.password_hash = await run_in_threadpool(hash_password, password)
            await self.db.commit()
            logger.info("auth.password_rehashed", user_id=str(user.id))

        try:
            pair = await self.tokens.start_session(user.id, user.email)
        except InvalidRefreshTokenError:
            # Account deleted between the lookup and the session write.
            raise AuthenticationError("User doesn't exist")

        logger.info("auth.signed_in", user_id=str(user.id))
        return pair

    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise ValidationError("Missing refresh token")

        try:
            pair = await self.tokens.rotate(refresh_token)
        except InvalidRefreshTokenError as e:
            logger.info("auth.refresh_rejected", reason=str(e), stale=e.stale)
            if e.stale:
                raise AuthenticationError("Invalid refresh token")
            raise AuthenticationError("Invalid or expired refresh token")

        logger.info("auth.refreshed")
        return pair

    async def sign_out(self, identity: CurrentIdentity) -> None:
        """Forget the stored refresh token; the current one stops rotating."""
        await self.tokens.end_session(identity.user_id)
        logger.info("auth.signed_out")

    # ─── The caller's own account ───────────────────────

    async def get_me(self, identity: CurrentIdentity) -> User:
        user = await self.db.get(User, identity.user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    async def delete_me(self, identity: CurrentIdentity) -> str:
        """Delete the caller's account and posts. Returns the deleted email."""
        await self.db.execute(
            delete(Post)
            .where(Post.author_id == identity.user_id)
            .execution_options(synchronize_session=False)
        )
        if not await self.guard.delete(self.db, identity.user_id, identity):
            raise NotFoundError(USER_NOT_FOUND)

        logger.info("users.deleted")
        return identity.email

    async def update_bio(
        self, identity: CurrentIdentity, bio: object
    ) -> tuple[MutationResult, str]:
        if not isinstance(bio, str) or not bio.strip():
            raise ValidationError("Bio is required and must be a non-empty string")
        bio = bio.strip()
        if len(bio) > BIO_MAX_LENGTH:
            raise ValidationError(f"Bio must be less than {BIO_MAX_LENGTH} characters")

        outcome = await self.guard.update(
            self.db, identity.user_id, identity, {"bio": bio}
        )
        if outcome is MutationResult.NOT_FOUND:
            raise NotFoundError(USER_NOT_FOUND)
        return outcome, bio

    # ─── Public profiles ────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    async def public_profile(self, user_id: uuid.UUID) -> dict:
        user = await self.get_user(user_id)
        post_count = await self.db.scalar(
            select(func.count()).select_from(Post).where(Post.author_id == user.id)
        )
        return {
            "user_id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "bio": user.bio,
            "post_count": post_count or 0,
        }

    async def list_user_posts(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        sort: str = "createdAt",
        order: str = "desc",
    ) -> tuple[list[Post], dict]:
        """One page of a user's posts. 404 if the user doesn't exist."""
        user = await self.get_user(user_id)
        return await PostService(self.db).list_posts(
            page=page, limit=limit, sort=sort, order=order, author_id=user.id
        )
