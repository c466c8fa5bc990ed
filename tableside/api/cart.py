"""Table cart API endpoints."""
import logging
from decimal import Decimal
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tableside.api.errors import http_error
from tableside.core.dependencies import get_cart_store, get_menu_repository, get_table_repository
from tableside.services.cart.aggregator import Cart
from tableside.services.cart.store import KeyValueStore
from tableside.services.menu.repository import MenuRepository
from tableside.services.persistence.restaurants import TableRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class CartLineResponse(BaseModel):
    item_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    image_url: Optional[str] = None
    description: Optional[str] = None


class CartResponse(BaseModel):
    """Cart response model."""
    table_id: int
    lines: List[CartLineResponse] = []
    total_items: int
    total_price: Decimal


class AddItemRequest(BaseModel):
    item_id: str
    quantity: Any = 1


class UpdateQuantityRequest(BaseModel):
    quantity: Any


def cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        table_id=cart.table_id,
        lines=[
            CartLineResponse(**line.model_dump(), line_total=line.line_total)
            for line in cart.lines
        ],
        total_items=cart.get_total_items(),
        total_price=cart.get_total_price(),
    )


async def _load_cart(table_id: int, tables: TableRepository, store: KeyValueStore) -> Cart:
    await tables.get_table(table_id)
    return Cart.load(table_id, store)


@router.get("/api/tables/{table_id}/cart", response_model=CartResponse)
async def get_cart(
    table_id: int,
    tables: TableRepository = Depends(get_table_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    """Get the current cart of a table."""
    try:
        cart = await _load_cart(table_id, tables, store)
    except Exception as e:
        raise http_error("CART", e) from e
    return cart_response(cart)


@router.post("/api/tables/{table_id}/cart/items", response_model=CartResponse)
async def add_cart_item(
    table_id: int,
    body: AddItemRequest,
    tables: TableRepository = Depends(get_table_repository),
    menu_repository: MenuRepository = Depends(get_menu_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    """Add a menu item, incrementing the line if it is already in the cart."""
    logger.info(f"[CART] Table {table_id} adding {body.item_id} x {body.quantity}")
    try:
        table = await tables.get_table(table_id)
        item = await menu_repository.require_available_item(table.restaurant_id, body.item_id)
        cart = Cart.load(table_id, store)
        cart.add_item(item, body.quantity)
    except Exception as e:
        raise http_error("CART", e) from e
    return cart_response(cart)


@router.patch("/api/tables/{table_id}/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    table_id: int,
    item_id: str,
    body: UpdateQuantityRequest,
    tables: TableRepository = Depends(get_table_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    """Set a line's quantity. Zero or less removes the line."""
    try:
        cart = await _load_cart(table_id, tables, store)
        cart.update_quantity(item_id, body.quantity)
    except Exception as e:
        raise http_error("CART", e) from e
    return cart_response(cart)


@router.delete("/api/tables/{table_id}/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    table_id: int,
    item_id: str,
    tables: TableRepository = Depends(get_table_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    try:
        cart = await _load_cart(table_id, tables, store)
        cart.remove_item(item_id)
    except Exception as e:
        raise http_error("CART", e) from e
    return cart_response(cart)


@router.delete("/api/tables/{table_id}/cart", response_model=CartResponse)
async def clear_cart(
    table_id: int,
    tables: TableRepository = Depends(get_table_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    try:
        cart = await _load_cart(table_id, tables, store)
        cart.clear()
    except Exception as e:
        raise http_error("CART", e) from e
    logger.info(f"[CART] Table {table_id} cart cleared")
    return cart_response(cart)
