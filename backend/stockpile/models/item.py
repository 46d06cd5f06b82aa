"""Item model."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from stockpile.database import Base
from stockpile.utils import utcnow


class Item(Base):
    """An item in a user's stockpile."""

    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_user_created", "user_id", "created_at", "seq"),
    )

    # Insertion order, breaks ties between items created at the same instant
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, index=True, nullable=False, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    category = Column(String(50))
    image_url = Column(String(2048))
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="items")
