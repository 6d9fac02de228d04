"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Routers mix open and protected routes (anyone can list posts,
only the author can edit one), so authentication is declared per route
with Depends(get_current_user) rather than on include_router.
"""

from fastapi import APIRouter

from quill.api.auth import router as auth_router
from quill.api.health import router as health_router
from quill.api.posts import router as posts_router
from quill.api.users import router as users_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(posts_router, tags=["posts"])
