"""Item CRUD scoped to the owning user."""
from collections.abc import Mapping
import logging
from typing import Any

from sqlalchemy.orm import Session

from stockpile.errors import NotFoundError
from stockpile.models.item import Item
from stockpile.schemas.item import ItemCreate, ItemUpdate
from stockpile.services.guard import authorize_ownership
from stockpile.utils import Clock, utcnow
from stockpile.validation import validate_model

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Columns that cannot be cleared by an update
REQUIRED_FIELDS = {"name", "quantity"}


class ItemService:
    """List, create, update and delete items for one owner at a time."""

    def __init__(
        self,
        db: Session,
        clock: Clock = utcnow,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.db = db
        self.clock = clock
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def clamp_limit(self, limit: int | None) -> int:
        """Keep page sizes within [1, max_page_size] to bound response size."""
        if limit is None:
            limit = self.default_page_size
        return max(1, min(limit, self.max_page_size))

    def list_items(
        self,
        user_id: str,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[Item], int]:
        """Return one page of the user's items, newest first, and the total count."""
        limit = self.clamp_limit(limit)
        page = max(1, page)

        query = self.db.query(Item).filter(Item.user_id == user_id)
        total = query.count()
        offset = (page - 1) * limit
        # Past the end; also keeps huge page numbers away from the database
        if offset >= total:
            return [], total

        items = (
            query.order_by(Item.created_at.desc(), Item.seq.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    def get_item(self, user_id: str, item_id: str) -> Item:
        """Load an item the user owns; anything else is NotFound."""
        item = self.db.query(Item).filter(Item.id == item_id).first()
        if item is None:
            raise NotFoundError("Item not found")
        authorize_ownership(user_id, item.user_id)
        return item

    def create_item(self, user_id: str, fields: Mapping[str, Any] | ItemCreate) -> Item:
        """Validate and insert a new item."""
        data = fields if isinstance(fields, ItemCreate) else validate_model(ItemCreate, fields)
        now = self.clock()
        item = Item(
            user_id=user_id,
            name=data.name,
            description=data.description,
            category=data.category,
            image_url=str(data.image_url) if data.image_url else None,
            quantity=data.quantity,
            created_at=now,
            updated_at=now,
        )
        self.db.add(item)
        self.db.flush()
        logger.info(f"User {user_id} created item {item.id}")
        return item

    def update_item(self, user_id: str, item_id: str, fields: Mapping[str, Any] | ItemUpdate) -> Item:
        """Apply a partial update to an item the user owns."""
        # Ownership first, so validation errors never reveal other users' items
        item = self.get_item(user_id, item_id)
        data = fields if isinstance(fields, ItemUpdate) else validate_model(ItemUpdate, fields)

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            if field == "image_url" and value is not None:
                value = str(value)
            setattr(item, field, value)

        item.updated_at = self.clock()
        self.db.flush()
        logger.info(f"User {user_id} updated item {item.id}")
        return item

    def delete_item(self, user_id: str, item_id: str) -> None:
        """Delete an item the user owns."""
        item = self.get_item(user_id, item_id)
        self.db.delete(item)
        self.db.flush()
        logger.info(f"User {user_id} deleted item {item_id}")
