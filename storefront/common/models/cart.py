from sqlalchemy import Column, DateTime, String, func
from .base import Base


class Cart(Base):
    __tablename__ = "cart"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
