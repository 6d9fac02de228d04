"""JWT token creation, verification and rotation.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (60min), used for API calls
- Refresh token: longer-lived (7 days), exchanged for a new pair

Both carry the same identity claims (sub = user id, email), are signed
with one server-held secret, and are readable by whoever holds them;
signed, not encrypted. Each token also gets a random jti, so two tokens
issued in the same second are still different strings.

Rotation is where the session store comes in: a refresh token is only
accepted if it is still the one stored for that user, and accepting it
replaces it. A rotated-away token is dead from then on, no grace window.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from quill.auth.sessions import SessionStore
from quill.config import Settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


class InvalidTokenError(TokenError):
    """Bad signature, expired, malformed, or the wrong kind of token."""


class InvalidRefreshTokenError(TokenError):
    """Refresh token rejected by rotation.

    stale is True when the token itself verifies but is no longer the
    stored one (already rotated away, or the session was ended).
    """

    def __init__(self, message: str, stale: bool = False):
        super().__init__(message)
        self.stale = stale


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    email: str
    token_type: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """Issues, verifies and rotates access/refresh token pairs."""

    def __init__(self, settings: Settings, sessions: Optional[SessionStore] = None):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)
        self.sessions = sessions

    def _encode(self, user_id: uuid.UUID, email: str, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue_pair(self, user_id: uuid.UUID, email: str) -> TokenPair:
        """Sign an access and a refresh token over the same claims."""
        return TokenPair(
            access_token=self._encode(user_id, email, ACCESS, self.access_ttl),
            refresh_token=self._encode(user_id, email, REFRESH, self.refresh_ttl),
        )

    def verify(self, token: str, expected_type: Optional[str] = None) -> TokenClaims:
        """Verify signature and expiry, then decode the identity claims.

        Raises InvalidTokenError on any failure. The reason is kept in the
        exception for logs; callers must not echo it to clients.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        token_type = payload.get("type")
        if expected_type is not None and token_type != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {token_type}")

        try:
            user_id = uuid.UUID(payload["sub"])
        except (ValueError, TypeError, AttributeError):
            raise InvalidTokenError("Invalid subject claim")
        email = payload.get("email")
        if not isinstance(email, str):
            raise InvalidTokenError("Missing email claim")

        return TokenClaims(user_id=user_id, email=email, token_type=token_type)

    async def start_session(self, user_id: uuid.UUID, email: str) -> TokenPair:
        """Issue a pair and make its refresh token the user's only live one."""
        pair = self.issue_pair(user_id, email)
        if not await self._require_sessions().store(user_id, pair.refresh_token):
            raise InvalidRefreshTokenError("User no longer exists", stale=True)
        return pair

    async def rotate(self, old_refresh_token: str) -> TokenPair:
        """Exchange a live refresh token for a brand-new pair.

        Raises InvalidRefreshTokenError either way it fails: stale=False
        when the token doesn't verify, stale=True when it verifies but was
        already rotated away (or the session was ended).
        """
        try:
            claims = self.verify(old_refresh_token, expected_type=REFRESH)
        except InvalidTokenError as e:
            raise InvalidRefreshTokenError(str(e)) from e
        pair = self.issue_pair(claims.user_id, claims.email)
        swapped = await self._require_sessions().swap(
            claims.user_id, old_refresh_token, pair.refresh_token
        )
        if not swapped:
            raise InvalidRefreshTokenError(
                "Refresh token is not the current one", stale=True
            )
        return pair

    async def end_session(self, user_id: uuid.UUID) -> None:
        await self._require_sessions().clear(user_id)

    def _require_sessions(self) -> SessionStore:
        if self.sessions is None:
            raise RuntimeError("TokenService was built without a session store")
        return self.sessions
