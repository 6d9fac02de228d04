"""Post API tests.

Learn: Tests cover:
1. Create / read with validation and the camelCase wire format
2. Paginated, sorted listing
3. Author-only update and delete: a non-author gets exactly the same
   404 as a post that doesn't exist, never a hint that it does
4. Database failures surfacing as a generic 500
"""

import uuid

import pytest

from quill.db.models import Base


# ═══════════════════════════════════════════════════════════
# Create / read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_post(client, make_user):
    user = await make_user()
    r = await client.post(
        "/posts",
        json={
            "title": "Hello",
            "body": "World",
            "tags": ["intro", "meta"],
            "coverImageUrl": "https://img.example.com/a.png",
        },
        headers=user["headers"],
    )
    assert r.status_code == 201
    data = r.json()
    assert data["message"] == "Post created successfully"
    post_id = data["postId"]

    r = await client.get(f"/posts/{post_id}", headers=user["headers"])
    assert r.status_code == 200
    post = r.json()["post"]
    assert post["id"] == post_id
    assert post["title"] == "Hello"
    assert post["body"] == "World"
    assert post["authorId"] == user["id"]
    assert post["tags"] == ["intro", "meta"]
    assert post["coverImageUrl"] == "https://img.example.com/a.png"
    assert "createdAt" in post and "updatedAt" in post


@pytest.mark.asyncio
async def test_create_post_single_tag_becomes_list(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user, tags="solo")

    r = await client.get(f"/posts/{post_id}", headers=user["headers"])
    assert r.json()["post"]["tags"] == ["solo"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"title": "only title"}, {"body": "only body"}, {"title": "", "body": "b"}],
)
async def test_create_post_needs_title_and_body(client, make_user, payload):
    user = await make_user()
    r = await client.post("/posts", json=payload, headers=user["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "title and body needed"}


@pytest.mark.asyncio
async def test_create_post_requires_auth(client):
    r = await client.post("/posts", json={"title": "t", "body": "b"})
    assert r.status_code == 401
    assert r.json() == {"error": "Missing or invalid token"}


@pytest.mark.asyncio
async def test_get_post_requires_auth(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user)
    r = await client.get(f"/posts/{post_id}")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_get_post_bad_and_unknown_ids(client, make_user):
    user = await make_user()
    r = await client.get("/posts/12345", headers=user["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid ID"}

    r = await client.get(f"/posts/{uuid.uuid4()}", headers=user["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "Post ID not found"}


@pytest.mark.asyncio
async def test_any_user_can_read_a_post(client, make_user, make_post):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post_id = await make_post(alice)

    r = await client.get(f"/posts/{post_id}", headers=bob["headers"])
    assert r.status_code == 200
    assert r.json()["post"]["authorId"] == alice["id"]


# ═══════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_posts_is_public_and_paginated(client, make_user, make_post):
    user = await make_user()
    await make_post(user, title="B")
    await make_post(user, title="A")

    r = await client.get("/posts", params={"page": 2, "limit": 1, "sort": "title", "order": "asc"})
    assert r.status_code == 200
    data = r.json()
    assert [p["title"] for p in data["posts"]] == ["B"]
    assert data["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}


@pytest.mark.asyncio
async def test_list_posts_defaults(client, make_user, make_post):
    user = await make_user()
    for i in range(3):
        await make_post(user, title=f"P{i}")

    r = await client.get("/posts")
    data = r.json()
    assert len(data["posts"]) == 3
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 3, "pages": 1}


@pytest.mark.asyncio
async def test_list_posts_empty(client):
    r = await client.get("/posts")
    assert r.status_code == 200
    assert r.json() == {
        "posts": [],
        "pagination": {"page": 1, "limit": 10, "total": 0, "pages": 0},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [{"sort": "password"}, {"order": "sideways"}, {"page": 0}, {"limit": 0}, {"limit": 101}],
)
async def test_list_posts_rejects_bad_params(client, params):
    r = await client.get("/posts", params=params)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"
    assert "detail" in r.json()


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_author_updates_post(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user, title="Old")

    r = await client.put(
        f"/posts/{post_id}", json={"title": "New", "tags": "one"}, headers=user["headers"]
    )
    assert r.status_code == 200
    assert r.json() == {"message": "Post updated successfully"}

    post = (await client.get(f"/posts/{post_id}", headers=user["headers"])).json()["post"]
    assert post["title"] == "New"
    assert post["body"] == "Some body text"
    assert post["tags"] == ["one"]


@pytest.mark.asyncio
async def test_update_with_same_values_is_no_change(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user, title="Same", tags=["a"])

    r = await client.put(
        f"/posts/{post_id}", json={"title": "Same", "tags": ["a"]}, headers=user["headers"]
    )
    assert r.status_code == 200
    assert r.json() == {"message": "No changes made to the post"}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"title": "", "body": ""}, {"tags": ""}])
async def test_update_with_no_fields(client, make_user, make_post, payload):
    user = await make_user()
    post_id = await make_post(user)
    r = await client.put(f"/posts/{post_id}", json=payload, headers=user["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "No fields to update"}


@pytest.mark.asyncio
async def test_non_author_update_looks_like_missing_post(client, make_user, make_post):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post_id = await make_post(alice, title="Mine")

    # Same values as stored: still 404, never "No changes made"
    for payload in ({"title": "Hijacked"}, {"title": "Mine"}):
        r = await client.put(f"/posts/{post_id}", json=payload, headers=bob["headers"])
        assert r.status_code == 404
        assert r.json() == {"error": "Post not found or you are not the author"}

    missing = await client.put(
        f"/posts/{uuid.uuid4()}", json={"title": "x"}, headers=bob["headers"]
    )
    assert missing.status_code == 404
    assert missing.json() == r.json()

    post = (await client.get(f"/posts/{post_id}", headers=alice["headers"])).json()["post"]
    assert post["title"] == "Mine"


@pytest.mark.asyncio
async def test_update_bad_id(client, make_user):
    user = await make_user()
    r = await client.put("/posts/xyz", json={"title": "t"}, headers=user["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid ID"}


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_author_deletes_post(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user)

    r = await client.delete(f"/posts/{post_id}", headers=user["headers"])
    assert r.status_code == 200
    assert r.text == "Post deleted successfully"

    r = await client.get(f"/posts/{post_id}", headers=user["headers"])
    assert r.status_code == 404

    r = await client.delete(f"/posts/{post_id}", headers=user["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "Post not found or you are not the author"}


@pytest.mark.asyncio
async def test_non_author_cannot_delete(client, make_user, make_post):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post_id = await make_post(alice)

    r = await client.delete(f"/posts/{post_id}", headers=bob["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "Post not found or you are not the author"}

    r = await client.get(f"/posts/{post_id}", headers=alice["headers"])
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_delete_requires_auth(client, make_user, make_post):
    user = await make_user()
    post_id = await make_post(user)
    r = await client.delete(f"/posts/{post_id}")
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Persistence failures
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_database_failure_is_generic_500(client, database):
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    r = await client.get("/posts")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
