from .cart_service import CartService
from .cart_session import CartResult, CartSession, CartTotals, MemoryMirror, compute_totals
from .coupon_service import CouponResult, CouponService, apply_coupon
from .coupon_wallet_service import CouponWalletService
from .pricing_service import PriceService
from .shipping_service import ShippingService, compute_shipping

__all__ = [
    "CartService",
    "CartResult",
    "CartSession",
    "CartTotals",
    "MemoryMirror",
    "compute_totals",
    "CouponResult",
    "CouponService",
    "apply_coupon",
    "CouponWalletService",
    "PriceService",
    "ShippingService",
    "compute_shipping",
]
