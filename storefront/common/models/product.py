from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, Numeric, String, func
from .base import Base


class Product(Base):
    __tablename__ = "product"

    id = Column(String(36), primary_key=True)
    store_id = Column(String(36), ForeignKey("store.id"), nullable=False)
    category_id = Column(String(36), ForeignKey("category.id"), nullable=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    discount_price = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class ProductVariant(Base):
    """Purchasable option of a product (size, colour ...). Price is optional."""

    __tablename__ = "product_variant"

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    options = Column(JSON, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    discount_price = Column(Numeric(12, 2), nullable=True)


class ProductImage(Base):
    __tablename__ = "product_image"

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    url = Column(String(1024), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
