"""Pydantic schemas for sign-up, sign-in and token refresh.

Learn: Request fields are Optional on purpose. A missing email should
answer 400 "Missing email", not FastAPI's generic 422 listing every
absent field, so presence is checked in the service layer.
"""

import uuid
from typing import Optional

from quill.schemas.base import CamelModel


class SignUpRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None


class SignUpResponse(CamelModel):
    """Never includes the password hash."""
    id: uuid.UUID
    email: str


class SignInRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
