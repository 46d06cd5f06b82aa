"""SQLAlchemy models package."""
from stockpile.models.user import User, ProviderAccount
from stockpile.models.auth import AuthSession
from stockpile.models.item import Item

__all__ = [
    "User",
    "ProviderAccount",
    "AuthSession",
    "Item",
]
