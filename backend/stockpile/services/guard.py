"""Request authentication and resource ownership checks."""
import logging

from stockpile.errors import NotFoundError, UnauthenticatedError
from stockpile.services.sessions import SessionStore

logger = logging.getLogger(__name__)


def extract_token(authorization: str | None, cookie: str | None) -> str | None:
    """Pick the session token from a bearer header, falling back to the cookie."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return cookie or None


def authenticate(store: SessionStore, token: str | None) -> str:
    """Resolve a session token to a user id.

    Missing, unknown and expired tokens are reported the same way.
    """
    user_id = store.resolve(token)
    if user_id is None:
        if token:
            logger.info("Rejected request with invalid or expired session")
        raise UnauthenticatedError("Invalid or expired session")
    return user_id


def authorize_ownership(user_id: str, owner_id: str, resource: str = "Item") -> None:
    """Fail with NotFound when ``user_id`` does not own the resource.

    Someone else's resource looks exactly like one that does not exist.
    """
    if user_id != owner_id:
        raise NotFoundError(f"{resource} not found")
