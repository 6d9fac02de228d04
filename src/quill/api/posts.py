"""Post API routes.

Learn: Listing is public; everything else needs a bearer token.
Path ids are parsed here, before the service runs, so a malformed id
is a 400 without a database round trip.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from quill.auth.dependencies import CurrentIdentity, get_current_user
from quill.auth.ownership import MutationResult, parse_resource_id
from quill.db.engine import get_db
from quill.schemas.base import MessageResponse
from quill.schemas.post import (
    PostCreate,
    PostCreated,
    PostEnvelope,
    PostPage,
    PostUpdate,
)
from quill.services.post_service import PostService

router = APIRouter(prefix="/posts")


def _svc(db: AsyncSession = Depends(get_db)) -> PostService:
    return PostService(db)


@dataclass
class PageParams:
    page: int
    limit: int
    sort: str
    order: str


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Literal["createdAt", "updatedAt", "title"] = Query("createdAt"),
    order: Literal["asc", "desc"] = Query("desc"),
) -> PageParams:
    return PageParams(page=page, limit=limit, sort=sort, order=order)


@router.get("", response_model=PostPage)
async def list_posts(
    params: PageParams = Depends(page_params), svc: PostService = Depends(_svc)
):
    posts, pagination = await svc.list_posts(
        page=params.page, limit=params.limit, sort=params.sort, order=params.order
    )
    return {"posts": posts, "pagination": pagination}


@router.post("", response_model=PostCreated, status_code=201)
async def create_post(
    body: Optional[PostCreate] = None,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    body = body or PostCreate()
    post = await svc.create_post(
        identity,
        title=body.title,
        body=body.body,
        tags=body.tags,
        cover_image_url=body.cover_image_url,
    )
    return PostCreated(message="Post created successfully", post_id=post.id)


@router.get("/{post_id}", response_model=PostEnvelope)
async def get_post(
    post_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    post = await svc.get_post(parse_resource_id(post_id))
    return {"post": post}


@router.put("/{post_id}", response_model=MessageResponse)
async def update_post(
    post_id: str,
    body: Optional[PostUpdate] = None,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Update the caller's post. 404 if it's missing or not theirs."""
    pid = parse_resource_id(post_id)
    body = body or PostUpdate()
    outcome = await svc.update_post(
        identity,
        pid,
        title=body.title,
        body=body.body,
        tags=body.tags,
        cover_image_url=body.cover_image_url,
    )
    if outcome is MutationResult.UNCHANGED:
        return MessageResponse(message="No changes made to the post")
    return MessageResponse(message="Post updated successfully")


@router.delete("/{post_id}", response_class=PlainTextResponse)
async def delete_post(
    post_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    await svc.delete_post(identity, parse_resource_id(post_id))
    return "Post deleted successfully"
