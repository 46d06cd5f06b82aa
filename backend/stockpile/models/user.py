"""User models."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from stockpile.database import Base
from stockpile.utils import utcnow


class User(Base):
    """User account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone_number = Column(String(20), unique=True, index=True)  # E.164, NULL for email-only users
    password_hash = Column(String(255))  # NULL for one-time-code and OAuth users
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")
    items = relationship("Item", back_populates="user", cascade="all, delete-orphan")
    provider_accounts = relationship("ProviderAccount", back_populates="user", cascade="all, delete-orphan")


class ProviderAccount(Base):
    """External identity (OAuth provider subject) linked to a user."""

    __tablename__ = "provider_accounts"
    __table_args__ = (
        UniqueConstraint("provider_name", "provider_id", name="uq_provider_account"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_name = Column(String(50), nullable=False)
    provider_id = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="provider_accounts")
