from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, UniqueConstraint, func
from .base import Base


class Coupon(Base):
    __tablename__ = "coupon"

    id = Column(String(36), primary_key=True)
    code = Column(String(64), nullable=False, unique=True)  # always upper-case
    description = Column(String(255), nullable=True)
    discount_type = Column(String(16), nullable=False)  # percentage | fixed_amount
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_purchase_amount = Column(Numeric(12, 2), nullable=True)
    applicable_to = Column(String(32), nullable=False, default="all_products")
    applicable_product_ids = Column(JSON, nullable=True)
    applicable_category_ids = Column(JSON, nullable=True)
    # usage limits are enforced at checkout, not by the cart
    max_uses = Column(Integer, nullable=True)
    uses_per_user = Column(Integer, nullable=False, default=1)
    current_uses = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class UserCoupon(Base):
    """Coupon saved to a customer's account."""

    __tablename__ = "user_coupon"
    __table_args__ = (UniqueConstraint("user_id", "coupon_id", name="uq_user_coupon"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False)
    coupon_id = Column(String(36), ForeignKey("coupon.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
