"""Pydantic schemas for posts and post listings.

Learn: tags accepts either a list or a single string; the service wraps
a lone string into a one-element list before storing.
"""

import uuid
from datetime import datetime
from typing import Optional, Union

from quill.schemas.base import CamelModel


class PostCreate(CamelModel):
    title: Optional[str] = None
    body: Optional[str] = None
    tags: Optional[Union[list[str], str]] = None
    cover_image_url: Optional[str] = None


class PostUpdate(PostCreate):
    """Same fields as PostCreate; only the ones given are changed."""


class PostRead(CamelModel):
    id: uuid.UUID
    title: str
    body: str
    author_id: uuid.UUID
    tags: Optional[list[str]] = None
    cover_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PostEnvelope(CamelModel):
    post: PostRead


class PostCreated(CamelModel):
    message: str
    post_id: uuid.UUID


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PostPage(CamelModel):
    posts: list[PostRead]
    pagination: Pagination
