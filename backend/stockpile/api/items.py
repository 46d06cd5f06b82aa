"""Items API endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Query, status
from sqlalchemy.orm import Session

from stockpile.api.deps import get_current_user_id, get_db, get_item_service
from stockpile.limiter import default_limit
from stockpile.schemas.auth import SuccessResponse
from stockpile.schemas.item import ItemEnvelope, ItemForm, ItemListResponse, ItemResponse
from stockpile.services.items import ItemService

router = APIRouter(prefix="/items", tags=["items"], dependencies=[Depends(default_limit)])


@router.get("", response_model=ItemListResponse)
def list_items(
    page: int = Query(1, description="1-based page number"),
    limit: int | None = Query(None, description="Page size, capped at the configured maximum"),
    user_id: str = Depends(get_current_user_id),
    items: ItemService = Depends(get_item_service),
):
    """List the current user's items, newest first."""
    page = max(1, page)
    limit = items.clamp_limit(limit)
    results, total = items.list_items(user_id, page=page, limit=limit)
    return ItemListResponse(
        items=[ItemResponse.model_validate(item) for item in results],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
def create_item(
    form: Annotated[ItemForm, Form()],
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    items: ItemService = Depends(get_item_service),
):
    """Add an item."""
    item = items.create_item(user_id, form.model_dump(exclude_none=True))
    db.commit()
    db.refresh(item)
    return ItemEnvelope(item=ItemResponse.model_validate(item))


@router.get("/{item_id}", response_model=ItemEnvelope)
def get_item(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    items: ItemService = Depends(get_item_service),
):
    """Fetch one of the current user's items."""
    item = items.get_item(user_id, item_id)
    return ItemEnvelope(item=ItemResponse.model_validate(item))


@router.put("/{item_id}", response_model=ItemEnvelope)
def update_item(
    item_id: str,
    form: Annotated[ItemForm, Form()],
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    items: ItemService = Depends(get_item_service),
):
    """Update the fields that were sent."""
    item = items.update_item(user_id, item_id, form.model_dump(exclude_none=True))
    db.commit()
    db.refresh(item)
    return ItemEnvelope(item=ItemResponse.model_validate(item))


@router.delete("/{item_id}", response_model=SuccessResponse)
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    items: ItemService = Depends(get_item_service),
):
    """Delete one of the current user's items."""
    items.delete_item(user_id, item_id)
    db.commit()
    return SuccessResponse()
