"""User directory: registration, credential checks and external identities."""
from functools import lru_cache
import hashlib
import logging
import re

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockpile.errors import ConflictError, NotFoundError
from stockpile.models.user import ProviderAccount, User

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes, and newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password = plain_password.encode("utf-8")
    if len(password) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(password, hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")


@lru_cache
def dummy_password_hash() -> str:
    """Hash checked against when there is no real one, so misses cost the same."""
    return get_password_hash("stockpile-no-such-user")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def placeholder_email(kind: str, identifier: str) -> str:
    """Unique, undeliverable address for users who signed up without an email.

    Phone numbers are already ``+`` and digits, so they stay readable. Provider
    subjects are case sensitive and may hold any character, so they are hashed.
    """
    if kind == "phone" and re.fullmatch(r"\+?\d+", identifier):
        local = identifier.lstrip("+")
    else:
        local = hashlib.sha256(identifier.encode("utf-8")).hexdigest()
    return f"{local}@{kind}.invalid"


class UserService:
    """Creates and looks up users."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def get_by_phone(self, phone_number: str) -> User | None:
        return self.db.query(User).filter(User.phone_number == phone_number).first()

    def create_user(
        self,
        email: str,
        password: str | None = None,
        phone_number: str | None = None,
    ) -> User:
        """Create a user, failing with Conflict on a duplicate email or phone."""
        email = normalize_email(email)

        # Check email
        if self.get_by_email(email):
            raise ConflictError("Email already registered")

        # Check phone
        if phone_number and self.get_by_phone(phone_number):
            raise ConflictError("Phone number already registered")

        user = User(
            email=email,
            phone_number=phone_number or None,
            password_hash=get_password_hash(password) if password else None,
        )
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration
            self.db.rollback()
            logger.warning(f"Uniqueness violation creating user: {exc.orig}")
            raise ConflictError("Email or phone number already registered") from exc

        logger.info(f"Created user {user.id}")
        return user

    def authenticate_password(self, email: str, password: str) -> User | None:
        """Return the user if the email/password pair checks out."""
        user = self.get_by_email(email)
        if not user or not user.password_hash:
            # Same bcrypt work as a real check, so timing does not reveal accounts
            verify_password(password, dummy_password_hash())
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def get_or_create_by_phone(self, phone_number: str) -> User:
        """Find the user owning a verified phone number, creating one if needed."""
        user = self.get_by_phone(phone_number)
        if user:
            return user
        return self.create_user(
            email=placeholder_email("phone", phone_number),
            phone_number=phone_number,
        )

    def get_or_create_for_provider(
        self,
        provider_name: str,
        provider_id: str,
        email: str | None = None,
    ) -> User:
        """Resolve an external identity to a user, linking by email when possible."""
        provider_name = provider_name.lower()
        account = self.db.query(ProviderAccount).filter(
            ProviderAccount.provider_name == provider_name,
            ProviderAccount.provider_id == provider_id,
        ).first()
        if account:
            return account.user

        user = self.get_by_email(email) if email else None
        if user is None:
            user = self.create_user(
                email=email or placeholder_email(provider_name, provider_id),
            )

        self.db.add(ProviderAccount(
            user_id=user.id,
            provider_name=provider_name,
            provider_id=provider_id,
        ))
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Provider account already linked") from exc

        logger.info(f"Linked {provider_name} account to user {user.id}")
        return user

    def delete_user(self, user_id: str) -> None:
        """Delete a user together with their sessions, items and linked accounts."""
        user = self.get(user_id)
        self.db.delete(user)
        self.db.flush()
        logger.info(f"Deleted user {user_id}")
