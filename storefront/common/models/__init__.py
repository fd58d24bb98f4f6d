from .base import Base
from .store import Store
from .category import Category
from .product import Product, ProductImage, ProductVariant
from .cart import Cart
from .cart_item import CartItem
from .coupon import Coupon, UserCoupon

__all__ = [
    "Base",
    "Store",
    "Category",
    "Product",
    "ProductImage",
    "ProductVariant",
    "Cart",
    "CartItem",
    "Coupon",
    "UserCoupon",
]
