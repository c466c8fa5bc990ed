"""Test data shared by fixtures and test modules."""
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from tableside.db.models import DiningTable, Restaurant
from tableside.services.ordering.models import OrderRecord, OrderStatus, Priority

# Restaurant 1 charges 7.7% tax, restaurant 2 has no rate and uses the default
RESTAURANT_ID = 1
OTHER_RESTAURANT_ID = 2
TABLE_ID = 1
SECOND_TABLE_ID = 2
OTHER_RESTAURANT_TABLE_ID = 3


async def seed_restaurants(session: AsyncSession) -> None:
    """Insert the restaurants and tables every test works with."""
    session.add_all(
        [
            Restaurant(
                id=RESTAURANT_ID,
                name="Test Bistro",
                tax_rate_percent=Decimal("7.7"),
                currency_symbol="CHF",
            ),
            Restaurant(id=OTHER_RESTAURANT_ID, name="Other Place"),
        ]
    )
    await session.flush()
    session.add_all(
        [
            DiningTable(id=TABLE_ID, restaurant_id=RESTAURANT_ID, number="5", capacity=4),
            DiningTable(id=SECOND_TABLE_ID, restaurant_id=RESTAURANT_ID, number="6", capacity=2),
            DiningTable(
                id=OTHER_RESTAURANT_TABLE_ID, restaurant_id=OTHER_RESTAURANT_ID, number="1", capacity=4
            ),
        ]
    )
    await session.commit()


def make_order(
    order_id: int,
    status: OrderStatus = OrderStatus.PENDING,
    minutes_ago: int = 0,
    priority: Priority = Priority.NORMAL,
    version: int = 1,
    restaurant_id: int = RESTAURANT_ID,
    now: datetime = datetime(2026, 10, 19, 12, 0, 0),
) -> OrderRecord:
    """Detached order record for board and alert tests."""
    created_at = now - timedelta(minutes=minutes_ago)
    return OrderRecord(
        id=order_id,
        order_number=f"ORD-{order_id:03d}",
        restaurant_id=restaurant_id,
        table_id=TABLE_ID,
        status=status,
        priority=priority,
        estimated_time_minutes=15,
        subtotal_amount=Decimal("10.00"),
        tax_rate_percent=Decimal("0"),
        tax_amount=Decimal("0.00"),
        total_amount=Decimal("10.00"),
        version=version,
        created_at=created_at,
        updated_at=created_at,
    )


