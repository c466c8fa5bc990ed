"""Order persistence service."""
import logging
from typing import Iterable, List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tableside.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    OrderConflictError,
    OrderNotFoundError,
    StorageError,
)
from tableside.db.models import Order, OrderItem, utcnow
from tableside.services.feed.broker import OrderFeed
from tableside.services.feed.events import order_added, order_deleted, order_updated
from tableside.services.ordering.models import (
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
    OrderTotals,
    Priority,
    StatusChangeResult,
)
from tableside.services.ordering.state_machine import ACTIVE_LANES, validate_transition

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"
SEQUENCE_DIGITS = 6


class OrderNumberTakenError(Exception):
    """The generated order number already exists for the restaurant."""


def format_order_number(year: int, sequence: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}-{year}-{sequence:0{SEQUENCE_DIGITS}d}"


class OrderRepository:
    """
    Service for persisting order data.

    Every committed mutation is published on the live feed, one event per
    order.
    """

    def __init__(self, db: AsyncSession, feed: Optional[OrderFeed] = None):
        self.db = db
        self.feed = feed

    async def create_order(
        self,
        restaurant_id: int,
        table_id: int,
        order_number: str,
        items: List[OrderItemRecord],
        totals: OrderTotals,
        notes: Optional[str] = None,
        customer_name: Optional[str] = None,
        estimated_time_minutes: int = 15,
        priority: Priority = Priority.NORMAL,
    ) -> OrderRecord:
        """Create a new pending order with its items."""
        now = utcnow()
        order = Order(
            order_number=order_number,
            restaurant_id=restaurant_id,
            table_id=table_id,
            customer_name=customer_name,
            status=OrderStatus.PENDING.value,
            priority=priority.value,
            notes=notes,
            estimated_time_minutes=estimated_time_minutes,
            subtotal_amount=totals.subtotal,
            tax_rate_percent=totals.tax_rate_percent,
            tax_amount=totals.tax,
            total_amount=totals.total,
            version=1,
            created_at=now,
            updated_at=now,
        )
        order.items = [
            OrderItem(
                menu_item_id=item.menu_item_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                modifiers=list(item.modifiers) or None,
            )
            for item in items
        ]
        self.db.add(order)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if "order_number" in str(e.orig) or "uq_orders_restaurant_number" in str(e.orig):
                raise OrderNumberTakenError(order_number) from e
            raise StorageError(f"Could not create order: {e.orig}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not create order: {e}") from e

        record = await self.get_order(order.id)
        logger.info(
            f"[ORDERS] Created order {record.order_number} (id={record.id}) "
            f"for restaurant {restaurant_id}, table {table_id}"
        )
        self._publish(order_added(record))
        return record

    async def find_order(self, order_id: int) -> Optional[OrderRecord]:
        """Get order by ID with items, or None."""
        try:
            result = await self.db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.items))
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Could not load order {order_id}: {e}") from e
        order = result.scalar_one_or_none()
        return OrderRecord.model_validate(order) if order else None

    async def get_order(self, order_id: int) -> OrderRecord:
        """Get order by ID with items or raise OrderNotFoundError."""
        record = await self.find_order(order_id)
        if record is None:
            raise OrderNotFoundError(order_id)
        return record

    async def list_orders(
        self,
        restaurant_id: int,
        statuses: Optional[Iterable[OrderStatus]] = None,
        active_only: bool = False,
        limit: int = 100,
    ) -> List[OrderRecord]:
        """List a restaurant's orders, newest first."""
        query = (
            select(Order)
            .where(Order.restaurant_id == restaurant_id)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        )
        wanted = set(statuses or [])
        if active_only:
            if wanted:
                wanted &= set(ACTIVE_LANES)
                if not wanted:
                    return []
            else:
                wanted = set(ACTIVE_LANES)
        if wanted:
            query = query.where(Order.status.in_([status.value for status in wanted]))
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not list orders for restaurant {restaurant_id}: {e}") from e
        return [OrderRecord.model_validate(order) for order in result.scalars().all()]

    async def next_order_number(self, restaurant_id: int, year: Optional[int] = None) -> str:
        """
        Next sequential order number for the restaurant and year.

        Follows the highest existing sequence, so gaps left by deleted orders
        never lead to a duplicate. Timestamp fallback numbers are ignored.
        """
        year = year or utcnow().year
        prefix = f"{ORDER_NUMBER_PREFIX}-{year}-"
        try:
            result = await self.db.execute(
                select(Order.order_number).where(
                    Order.restaurant_id == restaurant_id,
                    Order.order_number.like(f"{prefix}%"),
                )
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Could not number order: {e}") from e
        highest = 0
        for order_number in result.scalars().all():
            suffix = order_number[len(prefix):]
            if len(suffix) == SEQUENCE_DIGITS and suffix.isdigit():
                highest = max(highest, int(suffix))
        return format_order_number(year, highest + 1)

    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        expected_version: Optional[int] = None,
    ) -> OrderRecord:
        """
        Move an order forward to ``status``.

        Raises InvalidTransitionError for anything but a forward move and
        OrderConflictError when the stored version differs from
        ``expected_version`` or changes between read and write.
        """
        current = await self.get_order(order_id)
        target = validate_transition(current.status, status)
        updated = await self._write(
            current,
            expected_version,
            status=target.value,
        )
        logger.info(
            f"[ORDERS] Order {updated.order_number} status "
            f"{current.status.value} -> {updated.status.value} (v{updated.version})"
        )
        self._publish(order_updated(updated, previous_status=current.status))
        return updated

    async def update_priority(
        self,
        order_id: int,
        priority: Priority,
        expected_version: Optional[int] = None,
    ) -> OrderRecord:
        """Change the display priority of an order."""
        current = await self.get_order(order_id)
        updated = await self._write(current, expected_version, priority=priority.value)
        self._publish(order_updated(updated))
        return updated

    async def bulk_update_status(
        self,
        restaurant_id: int,
        order_ids: Iterable[int],
        status: OrderStatus,
    ) -> List[StatusChangeResult]:
        """Apply the same status to several orders, each independently."""
        results = []
        for order_id in order_ids:
            try:
                current = await self.get_order(order_id)
                if current.restaurant_id != restaurant_id:
                    raise OrderNotFoundError(order_id)
                updated = await self.update_status(order_id, status)
                results.append(
                    StatusChangeResult(order_id=order_id, success=True, status=updated.status)
                )
            except (NotFoundError, InvalidTransitionError, OrderConflictError, StorageError) as e:
                logger.warning(f"[ORDERS] Bulk status change skipped order {order_id}: {e}")
                results.append(StatusChangeResult(order_id=order_id, success=False, error=str(e)))
        return results

    async def delete_order(self, order_id: int) -> None:
        """Delete an order and its items."""
        result = await self.db.execute(
            select(Order).where(Order.id == order_id).options(selectinload(Order.items))
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        restaurant_id = order.restaurant_id
        await self.db.delete(order)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not delete order {order_id}: {e}") from e
        logger.info(f"[ORDERS] Deleted order {order_id}")
        self._publish(order_deleted(order_id, restaurant_id))

    async def _write(
        self,
        current: OrderRecord,
        expected_version: Optional[int],
        **values,
    ) -> OrderRecord:
        """Conditional update guarded by the order's version."""
        if expected_version is not None and expected_version != current.version:
            raise OrderConflictError(current.id, expected_version, current.version)
        try:
            result = await self.db.execute(
                update(Order)
                .where(Order.id == current.id, Order.version == current.version)
                .values(version=Order.version + 1, updated_at=utcnow(), **values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not update order {current.id}: {e}") from e

        if result.rowcount == 0:
            latest = await self.get_order(current.id)
            raise OrderConflictError(current.id, current.version, latest.version)
        return await self.get_order(current.id)

    def _publish(self, event) -> None:
        if self.feed is not None:
            self.feed.publish(event)
