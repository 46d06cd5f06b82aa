"""Stockpile - session-authenticated item API."""
from contextlib import asynccontextmanager
from datetime import timedelta
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from stockpile.api import auth, items
from stockpile.api.error_handlers import register_error_handlers
from stockpile.config import Settings, get_settings
from stockpile.database import Base, build_engine, build_session_factory, session_scope
from stockpile.limiter import build_limiter
from stockpile.logging_config import configure_logging
from stockpile.services.sessions import SessionStore
from stockpile.services.stytch import IdentityProvider, StytchClient
from stockpile.utils import Clock, utcnow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Import all models so they're registered with Base
    from stockpile import models  # noqa: F401

    state = app.state
    Base.metadata.create_all(bind=state.engine)

    with session_scope(state.session_factory) as db:
        store = SessionStore(
            db,
            secret_key=state.settings.secret_key,
            ttl=timedelta(days=state.settings.session_ttl_days),
            clock=state.clock,
        )
        store.purge_expired()

    yield

    if state.owns_identity_provider and state.identity_provider is not None:
        state.identity_provider.close()


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    identity_provider: IdentityProvider | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Build the application with explicitly constructed collaborators."""
    settings = settings or get_settings()
    configure_logging(settings.debug)

    owns_identity_provider = False
    if identity_provider is None and settings.stytch_enabled:
        identity_provider = StytchClient.from_settings(settings)
        owns_identity_provider = True
    elif identity_provider is None:
        logger.warning("Stytch credentials not set; phone and OAuth sign-in are disabled")

    app = FastAPI(
        title=settings.app_name,
        description="Keep track of your stuff",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.identity_provider = identity_provider
    app.state.owns_identity_provider = owns_identity_provider
    app.state.clock = clock or utcnow

    # Counters live with the app, so separately built apps never share them
    app.state.limiter = build_limiter(settings)

    register_error_handlers(app)

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    app.include_router(auth.router, prefix="/api")
    app.include_router(items.router, prefix="/api")

    return app


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("stockpile.main:create_app", factory=True, host="0.0.0.0", port=8000)
