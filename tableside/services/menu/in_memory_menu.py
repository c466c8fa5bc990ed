"""In-memory menu provider."""
import yaml
from pathlib import Path
from typing import List, Optional
from tableside.services.menu.base import Menu, MenuItem, MenuProvider


class InMemoryMenuProvider(MenuProvider):
    """In-memory menu provider using YAML configuration."""

    def __init__(self, menu_file: Optional[str] = None):
        """Initialize with optional menu file path."""
        if menu_file is None:
            menu_file = Path(__file__).parent / "data" / "menu.yaml"
        self.menu_file = Path(menu_file)
        self._items: Optional[List[MenuItem]] = None

    async def _load_items(self) -> List[MenuItem]:
        """Load all menu items from the YAML file."""
        if self._items is None:
            if not self.menu_file.exists():
                self._items = []
            else:
                with open(self.menu_file, "r") as f:
                    data = yaml.safe_load(f) or {}
                self._items = [
                    MenuItem(**item) for item in data.get("items", [])
                ]
        return self._items

    async def get_menu(self, restaurant_id: int) -> Menu:
        """Get the available menu of a restaurant."""
        items = [
            item
            for item in await self._load_items()
            if item.restaurant_id == restaurant_id and item.available
        ]
        categories: List[str] = []
        for item in items:
            if item.category and item.category not in categories:
                categories.append(item.category)
        return Menu(items=items, categories=categories)

    async def get_item(self, restaurant_id: int, item_id: str) -> Optional[MenuItem]:
        """Get a menu item by id."""
        for item in await self._load_items():
            if item.restaurant_id == restaurant_id and item.id == item_id:
                return item
        return None
