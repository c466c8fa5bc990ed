"""Restaurant and table persistence services."""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import settings
from tableside.core.errors import RestaurantNotFoundError, StorageError, TableNotFoundError
from tableside.db.models import DiningTable, Restaurant, utcnow
from tableside.services.ordering.models import TableStatus

logger = logging.getLogger(__name__)


class RestaurantConfig(BaseModel):
    """Read-only configuration consumed by carts and order submission."""

    restaurant_id: int
    name: str
    tax_rate_percent: Decimal
    currency_symbol: str


class TableRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    number: str
    capacity: int
    qr_code_ref: Optional[str] = None
    status: TableStatus


class RestaurantRepository:
    """Service for reading restaurant configuration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_config(self, restaurant_id: int) -> RestaurantConfig:
        """Restaurant settings with application defaults filled in."""
        try:
            restaurant = await self.db.get(Restaurant, restaurant_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not load restaurant {restaurant_id}: {e}") from e
        if restaurant is None:
            raise RestaurantNotFoundError(restaurant_id)

        tax_rate = restaurant.tax_rate_percent
        if tax_rate is None:
            tax_rate = Decimal(str(settings.default_tax_rate_percent))
        return RestaurantConfig(
            restaurant_id=restaurant.id,
            name=restaurant.name or settings.restaurant_name,
            tax_rate_percent=Decimal(tax_rate),
            currency_symbol=restaurant.currency_symbol or settings.default_currency_symbol,
        )


class TableRepository:
    """Service for persisting table data. Table status is set by staff only."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_table(self, table_id: int) -> TableRecord:
        try:
            table = await self.db.get(DiningTable, table_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not load table {table_id}: {e}") from e
        if table is None:
            raise TableNotFoundError(table_id)
        return TableRecord.model_validate(table)

    async def list_tables(self, restaurant_id: int) -> List[TableRecord]:
        result = await self.db.execute(
            select(DiningTable)
            .where(DiningTable.restaurant_id == restaurant_id)
            .order_by(DiningTable.id)
        )
        return [TableRecord.model_validate(table) for table in result.scalars().all()]

    async def update_status(self, table_id: int, status: TableStatus) -> TableRecord:
        table = await self.db.get(DiningTable, table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        table.status = status.value
        table.updated_at = utcnow()
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not update table {table_id}: {e}") from e
        logger.info(f"[TABLES] Table {table.number} (id={table_id}) is now {status.value}")
        return TableRecord.model_validate(table)

    async def bulk_update_status(
        self, restaurant_id: int, table_ids: Iterable[int], status: TableStatus
    ) -> List[TableRecord]:
        """Set the same status on several tables of one restaurant."""
        result = await self.db.execute(
            select(DiningTable).where(
                DiningTable.restaurant_id == restaurant_id,
                DiningTable.id.in_(list(table_ids)),
            )
        )
        tables = result.scalars().all()
        now = utcnow()
        for table in tables:
            table.status = status.value
            table.updated_at = now
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not update tables: {e}") from e
        logger.info(f"[TABLES] Bulk set {len(tables)} tables to {status.value}")
        return [TableRecord.model_validate(table) for table in tables]
