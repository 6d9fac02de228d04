"""Auth API — sign-up, sign-in, token refresh, sign-out.

Learn: Routes for the account/session lifecycle:
- POST /auth/signup → create an account (returns id + email only)
- POST /auth/signin → email/password → access + refresh tokens
- POST /auth/refresh-token → refresh token → brand-new pair (old one dies)
- POST /auth/signout → forget the stored refresh token
- GET /auth/protected → smoke test for a bearer token
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from quill.auth.dependencies import CurrentIdentity, get_current_user, get_token_service
from quill.auth.jwt import TokenService
from quill.db.engine import get_db
from quill.schemas.auth import (
    RefreshRequest,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
    TokenResponse,
)
from quill.schemas.base import MessageResponse
from quill.services.user_service import UserService

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(db, tokens)


# ─── Sign-up ─────────────────────────────────────────────


@router.post("/signup", response_model=SignUpResponse, status_code=201)
async def signup(
    body: Optional[SignUpRequest] = None, svc: UserService = Depends(_svc)
):
    """Create a new user account."""
    body = body or SignUpRequest()
    user = await svc.sign_up(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
    )
    return SignUpResponse(id=user.id, email=user.email)


# ─── Sign-in ─────────────────────────────────────────────


@router.post("/signin", response_model=TokenResponse)
async def signin(
    body: Optional[SignInRequest] = None, svc: UserService = Depends(_svc)
):
    """Sign in with email and password → JWT tokens."""
    body = body or SignInRequest()
    pair = await svc.sign_in(body.email, body.password)
    return TokenResponse(
        access_token=pair.access_token, refresh_token=pair.refresh_token
    )


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    body: Optional[RefreshRequest] = None, svc: UserService = Depends(_svc)
):
    """Exchange the current refresh token for a new pair."""
    body = body or RefreshRequest()
    pair = await svc.refresh(body.refresh_token)
    return TokenResponse(
        access_token=pair.access_token, refresh_token=pair.refresh_token
    )


# ─── Sign-out ───────────────────────────────────────────


@router.post("/signout", response_model=MessageResponse)
async def signout(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    await svc.sign_out(identity)
    return MessageResponse(message="Signed out")


@router.get("/protected", response_class=PlainTextResponse)
async def protected(identity: CurrentIdentity = Depends(get_current_user)):
    return "Hello from protected endpoint"
