from sqlalchemy import Boolean, Column, DateTime, String
from .base import Base, utcnow


class Admin(Base):
    __tablename__ = "admin"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    picture = Column(String(512), nullable=True)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
