from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from .base import Base


class CartItem(Base):
    __tablename__ = "cart_item"
    # variant_key mirrors variant_id with "" for NULL so the natural key can be
    # the target of an ON CONFLICT upsert.
    __table_args__ = (UniqueConstraint("cart_id", "product_id", "variant_key", name="uq_cart_item_line"),)

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), ForeignKey("cart.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    variant_id = Column(String(36), ForeignKey("product_variant.id"), nullable=True)
    variant_key = Column(String(36), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
