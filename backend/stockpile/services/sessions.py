"""Server-side session store.

Sessions are opaque random tokens handed to the client once. The database
keeps only an HMAC-SHA256 digest of each token, so a leaked table cannot be
replayed as cookies. A session is valid while ``now < expires_at``; expiry is
checked on every lookup and expired rows are simply treated as absent.
"""
from datetime import timedelta
import hashlib
import hmac
import logging
import secrets

from sqlalchemy.orm import Session

from stockpile.models.auth import AuthSession
from stockpile.utils import Clock, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=30)


class SessionStore:
    """Creates, resolves and destroys login sessions."""

    def __init__(
        self,
        db: Session,
        secret_key: str,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
    ) -> None:
        self.db = db
        self._secret = secret_key.encode("utf-8")
        self.ttl = ttl
        self.clock = clock

    def hash_token(self, token: str) -> str:
        """Digest a session token before persisting or looking it up."""
        return hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def create(
        self,
        user_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> tuple[AuthSession, str]:
        """Create a persisted session and return it with its raw token."""
        token = secrets.token_urlsafe(32)
        now = self.clock()
        session = AuthSession(
            user_id=user_id,
            token_hash=self.hash_token(token),
            created_at=now,
            expires_at=now + self.ttl,
            user_agent=user_agent[:255] if user_agent else None,
            ip_address=ip_address,
        )
        self.db.add(session)
        self.db.flush()
        logger.info(f"Created session {session.id} for user {user_id}")
        return session, token

    def resolve(self, token: str | None) -> str | None:
        """Return the owning user id, or None if the token is unknown or expired."""
        if not token:
            return None
        session = self.db.query(AuthSession).filter(
            AuthSession.token_hash == self.hash_token(token),
        ).first()
        if session is None or session.expires_at <= self.clock():
            return None
        return session.user_id

    def destroy(self, token: str | None) -> None:
        """Delete the session for ``token``; a no-op if it does not exist."""
        if not token:
            return
        deleted = self.db.query(AuthSession).filter(
            AuthSession.token_hash == self.hash_token(token),
        ).delete(synchronize_session=False)
        if deleted:
            logger.info("Destroyed session on logout")

    def destroy_all(self, user_id: str) -> int:
        """Delete every session belonging to a user."""
        deleted = self.db.query(AuthSession).filter(
            AuthSession.user_id == user_id,
        ).delete(synchronize_session=False)
        logger.info(f"Destroyed {deleted} sessions for user {user_id}")
        return deleted

    def purge_expired(self) -> int:
        """Remove sessions that can no longer resolve."""
        deleted = self.db.query(AuthSession).filter(
            AuthSession.expires_at <= self.clock(),
        ).delete(synchronize_session=False)
        if deleted:
            logger.info(f"Purged {deleted} expired sessions")
        return deleted
