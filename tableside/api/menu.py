"""Menu API endpoints."""
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from tableside.api.errors import http_error
from tableside.core.dependencies import get_menu_repository
from tableside.services.menu.repository import MenuRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class MenuItemResponse(BaseModel):
    """Menu item response model."""
    id: str
    name: str
    price: Decimal
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None

    class Config:
        from_attributes = True


class MenuResponse(BaseModel):
    """Menu response model."""
    restaurant_id: int
    items: List[MenuItemResponse]
    categories: List[str] = []


@router.get("/api/restaurants/{restaurant_id}/menu", response_model=MenuResponse)
async def get_menu(
    restaurant_id: int,
    request: Request,
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Get the orderable menu of a restaurant."""
    logger.info(
        f"[MENU] Request received - restaurant: {restaurant_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        menu = await menu_repository.get_menu(restaurant_id)
    except Exception as e:
        raise http_error("MENU", e) from e
    logger.info(f"[MENU] Menu loaded - {len(menu.items)} items, {len(menu.categories)} categories")
    return MenuResponse(
        restaurant_id=restaurant_id,
        items=[MenuItemResponse.model_validate(item) for item in menu.items],
        categories=menu.categories,
    )
