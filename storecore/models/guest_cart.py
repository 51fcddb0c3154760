from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, utcnow
from .cart import CartLineMixin


class GuestCart(Base):
    __tablename__ = "guest_cart"

    id = Column(String(36), primary_key=True)
    guest_id = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship("GuestCartItem", back_populates="cart", cascade="all, delete-orphan", passive_deletes=True)


class GuestCartItem(CartLineMixin, Base):
    __tablename__ = "guest_cart_item"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_guest_cart_item_product"),)

    cart_id = Column(String(36), ForeignKey("guest_cart.id", ondelete="CASCADE"), nullable=False, index=True)

    cart = relationship("GuestCart", back_populates="items")
