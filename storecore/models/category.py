from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from .base import Base, utcnow
from .product import product_category


class Category(Base):
    __tablename__ = "category"

    id = Column(String(36), primary_key=True)
    name_en = Column(String(255), nullable=False, unique=True)
    name_ar = Column(String(255), nullable=True)
    image = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    products = relationship("Product", secondary=product_category, back_populates="categories")
