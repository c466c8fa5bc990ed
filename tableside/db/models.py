"""Database models."""
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how rows are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Restaurant(Base):
    """Restaurant configuration consumed read-only by ordering."""

    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    tax_rate_percent = Column(Numeric(5, 3), nullable=True)
    currency_symbol = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    tables = relationship("DiningTable", back_populates="restaurant")
    orders = relationship("Order", back_populates="restaurant")


class DiningTable(Base):
    """Physical table with a QR code."""

    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    number = Column(String, nullable=False)
    capacity = Column(Integer, default=4, nullable=False)
    qr_code_ref = Column(String, nullable=True)
    status = Column(String, default="available", nullable=False)  # available, occupied, reserved, unavailable
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="tables")
    orders = relationship("Order", back_populates="table")


class Order(Base):
    """Order model."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    customer_name = Column(String, nullable=True)
    status = Column(String, default="pending", nullable=False)  # pending, preparing, ready, served, completed
    priority = Column(String, default="normal", nullable=False)  # high, normal
    notes = Column(Text, nullable=True)
    estimated_time_minutes = Column(Integer, default=15, nullable=False)
    subtotal_amount = Column(Numeric(10, 2), nullable=False)
    tax_rate_percent = Column(Numeric(5, 3), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="orders")
    table = relationship("DiningTable", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """Order item model."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    menu_item_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    modifiers = Column(JSON, nullable=True)  # List of modifier strings

    # Relationships
    order = relationship("Order", back_populates="items")
