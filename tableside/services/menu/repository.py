"""Menu repository."""
from typing import Dict, Iterable, Optional

from tableside.core.errors import MenuItemNotFoundError
from tableside.services.menu.base import Menu, MenuItem, MenuProvider


class MenuRepository:
    """Repository for menu operations."""

    def __init__(self, provider: MenuProvider):
        self.provider = provider

    async def get_menu(self, restaurant_id: int) -> Menu:
        """Get the full menu."""
        return await self.provider.get_menu(restaurant_id)

    async def get_item(self, restaurant_id: int, item_id: str) -> Optional[MenuItem]:
        """Get item by id."""
        return await self.provider.get_item(restaurant_id, item_id)

    async def require_available_item(self, restaurant_id: int, item_id: str) -> MenuItem:
        """Get an orderable item or raise MenuItemNotFoundError."""
        item = await self.get_item(restaurant_id, item_id)
        if item is None or not item.available:
            raise MenuItemNotFoundError(item_id)
        return item

    async def preparation_minutes(
        self, restaurant_id: int, item_ids: Iterable[str]
    ) -> Dict[str, int]:
        """Preparation time per item id, skipping items without one."""
        minutes = {}
        for item_id in item_ids:
            item = await self.get_item(restaurant_id, item_id)
            if item and item.preparation_minutes:
                minutes[item_id] = item.preparation_minutes
        return minutes
