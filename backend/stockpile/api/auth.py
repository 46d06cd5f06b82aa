"""Authentication API endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, Response, status
from sqlalchemy.orm import Session

from stockpile.api.deps import (
    get_current_user,
    get_db,
    get_identity_provider,
    get_session_store,
    get_session_token,
    get_settings,
    get_user_service,
)
from stockpile.config import Settings
from stockpile.errors import UnauthenticatedError
from stockpile.limiter import auth_limit
from stockpile.models.user import User
from stockpile.schemas.auth import (
    LoginForm,
    LogoutAllResponse,
    OAuthAuthenticate,
    OAuthForm,
    OtpSend,
    OtpSendForm,
    OtpSendResponse,
    OtpVerify,
    OtpVerifyForm,
    RegisterForm,
    SessionResponse,
    SuccessResponse,
    UserEnvelope,
    UserRegister,
    UserResponse,
)
from stockpile.services.sessions import SessionStore
from stockpile.services.stytch import IdentityProvider
from stockpile.services.users import UserService
from stockpile.validation import validate_model

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Issue secure HttpOnly session cookie."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path=settings.session_cookie_path,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Clear session cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path=settings.session_cookie_path,
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite=settings.session_cookie_samesite,
    )


def get_request_ip(request: Request) -> str | None:
    """Extract best-effort client IP for session metadata."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def start_session(
    user: User,
    request: Request,
    response: Response,
    db: Session,
    store: SessionStore,
    settings: Settings,
) -> SessionResponse:
    """Create a session for ``user``, commit, and hand the token back."""
    session, token = store.create(
        user.id,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_request_ip(request),
    )
    db.commit()
    set_session_cookie(response, token, settings)
    return SessionResponse(
        user=UserResponse.model_validate(user),
        session_token=token,
        expires_at=session.expires_at,
    )


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_limit)],
)
def register(
    form: Annotated[RegisterForm, Form()],
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """Register a new user and sign them in."""
    user_data = validate_model(UserRegister, form.model_dump(exclude_none=True))
    user = users.create_user(
        email=user_data.email,
        password=user_data.password,
        phone_number=user_data.phone_number,
    )
    return start_session(user, request, response, db, store, settings)


@router.post("/login", response_model=SessionResponse, dependencies=[Depends(auth_limit)])
def login(
    form: Annotated[LoginForm, Form()],
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """Sign in with email and password."""
    user = users.authenticate_password(form.email, form.password)
    if not user:
        logger.info("Failed password login")
        raise UnauthenticatedError("Incorrect email or password")

    logger.info(f"User {user.id} logged in with password")
    return start_session(user, request, response, db, store, settings)


@router.post("/otp/send", response_model=OtpSendResponse, dependencies=[Depends(auth_limit)])
def send_one_time_code(
    form: Annotated[OtpSendForm, Form()],
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Text a one-time code to a phone number."""
    data = validate_model(OtpSend, form.model_dump(exclude_none=True))
    method_id = provider.send_sms_code(data.phone_number)
    return OtpSendResponse(method_id=method_id)


@router.post("/otp/verify", response_model=SessionResponse, dependencies=[Depends(auth_limit)])
def verify_one_time_code(
    form: Annotated[OtpVerifyForm, Form()],
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Exchange a verified one-time code for a session."""
    data = validate_model(OtpVerify, form.model_dump(exclude_none=True))
    verified = provider.verify_code(data.method_id, data.code)
    if verified is None:
        logger.info("One-time code was not verified")
        raise UnauthenticatedError("Invalid or expired code")

    user = users.get_or_create_by_phone(verified.phone_number)
    logger.info(f"User {user.id} logged in with one-time code")
    return start_session(user, request, response, db, store, settings)


@router.post("/oauth", response_model=SessionResponse, dependencies=[Depends(auth_limit)])
def oauth_login(
    form: Annotated[OAuthForm, Form()],
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Exchange an OAuth callback token for a session."""
    data = validate_model(OAuthAuthenticate, form.model_dump(exclude_none=True))
    identity = provider.authenticate_oauth(data.token)
    if identity is None:
        logger.info("OAuth token was rejected")
        raise UnauthenticatedError("Invalid or expired OAuth token")

    user = users.get_or_create_for_provider(
        identity.provider_name,
        identity.provider_id,
        email=identity.email,
    )
    logger.info(f"User {user.id} logged in with {identity.provider_name}")
    return start_session(user, request, response, db, store, settings)


@router.get("/me", response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    """Return the signed-in user."""
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.post("/logout", response_model=SuccessResponse)
def logout(
    response: Response,
    db: Session = Depends(get_db),
    token: str | None = Depends(get_session_token),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """End the presented session. Succeeds even if it is already gone."""
    store.destroy(token)
    db.commit()
    clear_session_cookie(response, settings)
    return SuccessResponse()


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """End every session of the current user."""
    revoked = store.destroy_all(current_user.id)
    db.commit()
    clear_session_cookie(response, settings)
    return LogoutAllResponse(revoked=revoked)
