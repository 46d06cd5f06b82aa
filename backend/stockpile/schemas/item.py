"""Item schemas."""
from datetime import datetime
from typing import Annotated, Any

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, UrlConstraints, field_validator

MAX_QUANTITY = 10_000

ImageUrl = Annotated[AnyUrl, UrlConstraints(max_length=2048, allowed_schemes=["http", "https"])]


class ItemForm(BaseModel):
    """Raw form-encoded item fields, validated by the item service."""

    name: str | None = None
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    quantity: str | None = None


class _ItemFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str | None = Field(None, max_length=1000)
    category: str | None = Field(None, max_length=50)
    image_url: ImageUrl | None = None

    @field_validator("description", "category", "image_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ItemCreate(_ItemFields):
    """Validated fields for a new item."""

    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(1, ge=1, le=MAX_QUANTITY)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return 1
        return v


class ItemUpdate(_ItemFields):
    """Validated partial update; only fields that were sent are applied."""

    name: str | None = Field(None, min_length=1, max_length=100)
    quantity: int | None = Field(None, ge=1, le=MAX_QUANTITY)


class ItemResponse(BaseModel):
    """Item as returned to clients."""

    id: str
    name: str
    description: str | None
    category: str | None
    image_url: str | None
    quantity: int
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemEnvelope(BaseModel):
    item: ItemResponse


class ItemListResponse(BaseModel):
    """Paginated item list response."""

    items: list[ItemResponse]
    total: int
    page: int
    limit: int
