from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Table, Text
from sqlalchemy.orm import relationship
from .base import Base, utcnow


product_category = Table(
    "product_category",
    Base.metadata,
    Column("product_id", String(36), ForeignKey("product.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", String(36), ForeignKey("category.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = "product"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    id = Column(String(36), primary_key=True)
    name_en = Column(String(255), nullable=False)
    name_ar = Column(String(255), nullable=True)
    description_en = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=False)
    regular_price = Column(Numeric(12, 2), nullable=True)
    base_cost = Column(Numeric(12, 2), nullable=True)
    weight = Column(Numeric(10, 3), nullable=False)
    image = Column(String(512), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    # soft delete: rows stay so order history keeps resolving product ids
    deleted_at = Column(DateTime, nullable=True, index=True)

    categories = relationship("Category", secondary=product_category, back_populates="products")
