from sqlalchemy import Column, DateTime, String
from .base import Base


class GuestUser(Base):
    __tablename__ = "guest_user"

    id = Column(String(64), primary_key=True)
    expires_at = Column(DateTime, nullable=False)
