from sqlalchemy import Boolean, Column, DateTime, Numeric, String, func
from .base import Base


class Store(Base):
    """Seller shop. A threshold of NULL or 0 means no free-shipping rule."""

    __tablename__ = "store"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, unique=True)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)
    free_shipping_threshold = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
