"""Pydantic schemas for accounts and public profiles."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import model_serializer

from quill.schemas.base import CamelModel


class UserRead(CamelModel):
    """The caller's own account. No password hash, no refresh token."""

    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    # Any JSON value; the service answers non-strings with its own 400.
    bio: Any = None


class ProfileUpdateResponse(CamelModel):
    message: str
    bio: str


class PublicProfile(CamelModel):
    """What anyone can see about a user. bio is left out when unset."""

    user_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    post_count: int

    @model_serializer(mode="wrap")
    def _drop_empty_bio(self, handler):
        data = handler(self)
        if self.bio is None:
            data.pop("bio", None)
        return data
