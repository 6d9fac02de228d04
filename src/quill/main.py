"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. The database handle is created here and stored on app.state,
never imported as a global, so each app (and each test) owns its pool.
Lifespan disposes of it at shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quill import __version__
from quill.api import api_router
from quill.config import Settings, get_settings
from quill.db.engine import Database
from quill.errors import install_error_handlers
from quill.logging_config import configure_logging
from quill.middleware.disconnect import CancelOnDisconnectMiddleware
from quill.middleware.request_id import RequestIdMiddleware
from quill.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. The pool connects lazily, so startup only logs; shutdown
    closes every pooled connection.
    """
    settings: Settings = app.state.settings
    logger.info(
        "quill.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("quill.shutdown")
    await app.state.db.dispose()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Quill",
        description="Blog platform API: accounts, token sessions and posts",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database or Database.from_settings(settings)

    install_error_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CancelOnDisconnect → RequestId → Security → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(CancelOnDisconnectMiddleware)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: quill.main:app)
app = create_app()
