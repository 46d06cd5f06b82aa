"""FastAPI dependencies.

Everything a route needs (settings, database session, session store,
identity provider) is built from what ``create_app`` put on ``app.state``.
"""
from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from stockpile.config import Settings
from stockpile.database import get_db
from stockpile.errors import NotFoundError, UnauthenticatedError, UpstreamError
from stockpile.models.user import User
from stockpile.services.guard import authenticate, extract_token
from stockpile.services.items import ItemService
from stockpile.services.sessions import SessionStore
from stockpile.services.stytch import IdentityProvider
from stockpile.services.users import UserService
from stockpile.utils import Clock

__all__ = [
    "get_db",
    "get_settings",
    "get_session_store",
    "get_session_token",
    "get_current_user_id",
    "get_current_user",
]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_session_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> SessionStore:
    return SessionStore(
        db,
        secret_key=settings.secret_key,
        ttl=timedelta(days=settings.session_ttl_days),
        clock=clock,
    )


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_item_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> ItemService:
    return ItemService(
        db,
        clock=clock,
        default_page_size=settings.items_default_page_size,
        max_page_size=settings.items_max_page_size,
    )


def get_identity_provider(request: Request) -> IdentityProvider:
    provider = request.app.state.identity_provider
    if provider is None:
        raise UpstreamError("Phone and OAuth sign-in are not configured")
    return provider


def get_session_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str | None:
    """Session token from the Authorization header or the session cookie."""
    return extract_token(
        request.headers.get("authorization"),
        request.cookies.get(settings.session_cookie_name),
    )


def get_current_user_id(
    token: str | None = Depends(get_session_token),
    store: SessionStore = Depends(get_session_store),
) -> str:
    return authenticate(store, token)


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
) -> User:
    try:
        return users.get(user_id)
    except NotFoundError as exc:
        raise UnauthenticatedError("Invalid or expired session") from exc
