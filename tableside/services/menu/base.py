"""Menu provider interface."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel


class MenuItem(BaseModel):
    """Menu item model."""

    id: str
    restaurant_id: int
    name: str
    price: Decimal
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    available: bool = True
    preparation_minutes: Optional[int] = None


class Menu(BaseModel):
    """Menu model."""

    items: List[MenuItem]
    categories: List[str] = []


class MenuProvider(ABC):
    """Abstract base class for menu providers."""

    @abstractmethod
    async def get_menu(self, restaurant_id: int) -> Menu:
        """Get the available menu of a restaurant."""
        pass

    @abstractmethod
    async def get_item(self, restaurant_id: int, item_id: str) -> Optional[MenuItem]:
        """Get a menu item by id."""
        pass
