import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class _LookupEnum(str, enum.Enum):
    @classmethod
    def parse(cls, value):
        """Case-insensitive lookup; returns None for unknown values."""
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return None


class OrderStatus(_LookupEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class PaymentStatus(_LookupEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    order_ref = Column(String(128), nullable=False, unique=True)
    shipping_cost = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value)
    payment_status = Column(String(32), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", passive_deletes=True)


class OrderItem(Base):
    __tablename__ = "order_item"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)
    product_name_en = Column(String(255), nullable=False)
    product_name_ar = Column(String(255), nullable=True)
    product_image = Column(String(512), nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=False)
    regular_price = Column(Numeric(12, 2), nullable=True)
    weight = Column(Numeric(10, 3), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
