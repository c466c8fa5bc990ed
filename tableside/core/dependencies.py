"""FastAPI dependencies."""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import settings
from tableside.db.database import get_db
from tableside.services.cart.store import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from tableside.services.feed.broker import OrderFeed, order_feed
from tableside.services.menu.in_memory_menu import InMemoryMenuProvider
from tableside.services.menu.repository import MenuRepository
from tableside.services.ordering.submission import OrderSubmissionService
from tableside.services.persistence.orders import OrderRepository
from tableside.services.persistence.restaurants import RestaurantRepository, TableRepository


@lru_cache
def get_menu_repository() -> MenuRepository:
    """Get menu repository instance. The YAML file is read once per process."""
    return MenuRepository(provider=InMemoryMenuProvider(settings.menu_file))


@lru_cache
def get_cart_store() -> KeyValueStore:
    """Get the store holding table carts and kitchen flags."""
    if settings.cart_store_dir:
        return FileKeyValueStore(settings.cart_store_dir)
    return InMemoryKeyValueStore()


def get_order_feed() -> OrderFeed:
    return order_feed


def get_order_repository(
    db: AsyncSession = Depends(get_db),
    feed: OrderFeed = Depends(get_order_feed),
) -> OrderRepository:
    return OrderRepository(db, feed=feed)


def get_table_repository(db: AsyncSession = Depends(get_db)) -> TableRepository:
    return TableRepository(db)


def get_restaurant_repository(db: AsyncSession = Depends(get_db)) -> RestaurantRepository:
    return RestaurantRepository(db)


def get_submission_service(
    orders: OrderRepository = Depends(get_order_repository),
    restaurants: RestaurantRepository = Depends(get_restaurant_repository),
    tables: TableRepository = Depends(get_table_repository),
    menu_repository: MenuRepository = Depends(get_menu_repository),
) -> OrderSubmissionService:
    return OrderSubmissionService(orders, restaurants, tables, menu_repository=menu_repository)
