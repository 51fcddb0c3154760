from sqlalchemy import Column, DateTime, String
from .base import Base, utcnow


class User(Base):
    __tablename__ = "user_account"

    id = Column(String(128), primary_key=True)  # identity provider subject
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    picture = Column(String(512), nullable=True)
    provider = Column(String(32), nullable=True)
    country = Column(String(64), nullable=True)
    state = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)
    street = Column(String(255), nullable=True)
    postal_code = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
