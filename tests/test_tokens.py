"""Token service tests.

Learn: These run against an in-memory SessionStore, so they exercise the
issue/verify/rotate rules without HTTP or a database.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from quill.auth.jwt import (
    ACCESS,
    REFRESH,
    InvalidRefreshTokenError,
    InvalidTokenError,
    TokenService,
)


class MemorySessionStore:
    def __init__(self):
        self.tokens = {}

    async def store(self, user_id, token):
        self.tokens[user_id] = token
        return True

    async def swap(self, user_id, old, new):
        if self.tokens.get(user_id) != old:
            return False
        self.tokens[user_id] = new
        return True

    async def clear(self, user_id):
        self.tokens.pop(user_id, None)


@pytest.fixture()
def store():
    return MemorySessionStore()


@pytest.fixture()
def tokens(settings, store):
    return TokenService(settings, store)


USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def test_issue_pair_carries_identity_claims(tokens):
    pair = tokens.issue_pair(USER_ID, "a@x.com")

    access = tokens.verify(pair.access_token)
    refresh = tokens.verify(pair.refresh_token)
    assert access.user_id == USER_ID
    assert access.email == "a@x.com"
    assert access.token_type == ACCESS
    assert refresh.user_id == USER_ID
    assert refresh.token_type == REFRESH


def test_expiry_windows(settings, tokens):
    pair = tokens.issue_pair(USER_ID, "a@x.com")
    opts = {"verify_signature": False}
    access = jwt.decode(pair.access_token, options=opts)
    refresh = jwt.decode(pair.refresh_token, options=opts)

    assert access["exp"] - access["iat"] == 60 * 60
    assert refresh["exp"] - refresh["iat"] == 7 * 24 * 60 * 60


def test_tokens_are_never_identical(tokens):
    a = tokens.issue_pair(USER_ID, "a@x.com")
    b = tokens.issue_pair(USER_ID, "a@x.com")
    assert a.refresh_token != b.refresh_token
    assert a.access_token != b.access_token


def test_verify_rejects_tampered_token(tokens):
    pair = tokens.issue_pair(USER_ID, "a@x.com")
    forged = jwt.encode(
        {"sub": str(USER_ID), "email": "a@x.com", "type": "access",
         "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret-that-the-server-never-saw",
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        tokens.verify(forged)
    # Payload from another token under this token's signature
    other = tokens.issue_pair(USER_ID, "b@x.com")
    header, _, signature = pair.access_token.split(".")
    swapped = ".".join([header, other.access_token.split(".")[1], signature])
    with pytest.raises(InvalidTokenError):
        tokens.verify(swapped)
    with pytest.raises(InvalidTokenError):
        tokens.verify("not.a.token")


def test_verify_rejects_expired_token(settings, store):
    expired = TokenService(
        settings.model_copy(update={"access_token_expire_minutes": -1}), store
    )
    pair = expired.issue_pair(USER_ID, "a@x.com")
    with pytest.raises(InvalidTokenError, match="expired"):
        expired.verify(pair.access_token)


def test_verify_enforces_expected_type(tokens):
    pair = tokens.issue_pair(USER_ID, "a@x.com")
    with pytest.raises(InvalidTokenError):
        tokens.verify(pair.refresh_token, expected_type=ACCESS)
    with pytest.raises(InvalidTokenError):
        tokens.verify(pair.access_token, expected_type=REFRESH)


@pytest.mark.asyncio
async def test_start_session_stores_refresh_token(tokens, store):
    pair = await tokens.start_session(USER_ID, "a@x.com")
    assert store.tokens[USER_ID] == pair.refresh_token


@pytest.mark.asyncio
async def test_rotate_twice_invalidates_original(tokens, store):
    """First rotation wins, its token rotates again, the original is dead."""
    original = await tokens.start_session(USER_ID, "a@x.com")

    first = await tokens.rotate(original.refresh_token)
    assert store.tokens[USER_ID] == first.refresh_token

    second = await tokens.rotate(first.refresh_token)
    assert store.tokens[USER_ID] == second.refresh_token

    with pytest.raises(InvalidRefreshTokenError) as exc:
        await tokens.rotate(original.refresh_token)
    assert exc.value.stale is True
    # The failed attempt didn't disturb the live session
    assert store.tokens[USER_ID] == second.refresh_token


@pytest.mark.asyncio
async def test_rotate_rejects_access_token(tokens):
    pair = await tokens.start_session(USER_ID, "a@x.com")
    with pytest.raises(InvalidRefreshTokenError) as exc:
        await tokens.rotate(pair.access_token)
    assert exc.value.stale is False


@pytest.mark.asyncio
async def test_rotate_after_end_session_fails(tokens):
    pair = await tokens.start_session(USER_ID, "a@x.com")
    await tokens.end_session(USER_ID)
    with pytest.raises(InvalidRefreshTokenError):
        await tokens.rotate(pair.refresh_token)


def test_session_store_required_for_rotation(settings):
    service = TokenService(settings)
    with pytest.raises(RuntimeError):
        service._require_sessions()
