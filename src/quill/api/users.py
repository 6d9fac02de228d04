"""User API routes — the caller's account and public profiles.

Learn: /users/me routes act on the identity from the bearer token; there
is no user id in the path to tamper with. /users/{id} routes are public
and read-only.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from quill.api.posts import PageParams, page_params
from quill.auth.dependencies import CurrentIdentity, get_current_user, get_token_service
from quill.auth.jwt import TokenService
from quill.auth.ownership import MutationResult, parse_resource_id
from quill.db.engine import get_db
from quill.schemas.post import PostPage
from quill.schemas.user import (
    ProfileUpdate,
    ProfileUpdateResponse,
    PublicProfile,
    UserRead,
)
from quill.services.user_service import UserService

router = APIRouter(prefix="/users")


def _svc(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(db, tokens)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    """The caller's account. 404 if it was deleted after the token was issued."""
    return await svc.get_me(identity)


@router.delete("/me", response_class=PlainTextResponse)
async def delete_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    email = await svc.delete_me(identity)
    return f"Successfully deleted account with email: {email}"


@router.put("/me/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    body: Optional[ProfileUpdate] = None,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    body = body or ProfileUpdate()
    outcome, bio = await svc.update_bio(identity, body.bio)
    if outcome is MutationResult.UNCHANGED:
        return ProfileUpdateResponse(message="No changes made to bio", bio=bio)
    return ProfileUpdateResponse(message="Bio updated successfully", bio=bio)


# ─── Public profiles ────────────────────────────────────


@router.get("/{user_id}", response_model=PublicProfile)
async def get_user_public_info(user_id: str, svc: UserService = Depends(_svc)):
    return await svc.public_profile(parse_resource_id(user_id))


@router.get("/{user_id}/posts", response_model=PostPage)
async def get_user_posts(
    user_id: str,
    params: PageParams = Depends(page_params),
    svc: UserService = Depends(_svc),
):
    posts, pagination = await svc.list_user_posts(
        parse_resource_id(user_id),
        page=params.page,
        limit=params.limit,
        sort=params.sort,
        order=params.order,
    )
    return {"posts": posts, "pagination": pagination}
