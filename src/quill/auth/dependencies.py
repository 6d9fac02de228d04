"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

The gate is stateless: it checks the bearer token's signature, expiry and
type, and trusts the claims. It does not look the user up. Handlers that
need the full record (GET /users/me) load it themselves. A deleted user's
access token therefore keeps passing the gate until it expires.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from quill.auth.jwt import ACCESS, InvalidTokenError, TokenService
from quill.auth.sessions import SqlSessionStore
from quill.config import Settings
from quill.db.engine import get_db
from quill.errors import AuthenticationError

logger = structlog.get_logger()

MISSING_TOKEN = "Missing or invalid token"
INVALID_TOKEN = "Invalid or expired token"


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated caller, as asserted by a verified access token.

    Learn: All downstream code scopes mutations by user_id, see
    auth/ownership.py.
    """

    user_id: uuid.UUID
    email: str


def settings_from_request(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(
    settings: Settings = Depends(settings_from_request),
    db: AsyncSession = Depends(get_db),
) -> TokenService:
    """Token service wired to this request's session store."""
    return TokenService(settings, SqlSessionStore(db))


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from "Bearer <token>", or None if the header doesn't fit."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(settings_from_request),
) -> CurrentIdentity:
    """Require a valid access token (401 otherwise).

    Learn: Every failure past "no token at all" gets the same message:
    expired, tampered and malformed tokens look identical to the client.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise AuthenticationError(MISSING_TOKEN)

    try:
        claims = TokenService(settings).verify(token, expected_type=ACCESS)
    except InvalidTokenError as e:
        logger.info("auth.token_rejected", reason=str(e))
        raise AuthenticationError(INVALID_TOKEN)

    structlog.contextvars.bind_contextvars(user_id=str(claims.user_id))
    return CurrentIdentity(user_id=claims.user_id, email=claims.email)
