from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class CartLineMixin:
    """Product attributes copied onto a cart line when it is added."""

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), nullable=False)
    product_name_en = Column(String(255), nullable=False)
    product_name_ar = Column(String(255), nullable=True)
    product_image = Column(String(512), nullable=True)
    product_stock = Column(Integer, nullable=False, default=0)
    sale_price = Column(Numeric(12, 2), nullable=False)
    regular_price = Column(Numeric(12, 2), nullable=True)
    weight = Column(Numeric(10, 3), nullable=False)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime, nullable=False, default=utcnow)


class Cart(Base):
    __tablename__ = "cart"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan", passive_deletes=True)


class CartItem(CartLineMixin, Base):
    __tablename__ = "cart_item"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),)

    cart_id = Column(String(36), ForeignKey("cart.id", ondelete="CASCADE"), nullable=False, index=True)

    cart = relationship("Cart", back_populates="items")
