from .base import Base
from .admin import Admin
from .cart import Cart, CartItem
from .category import Category
from .guest_cart import GuestCart, GuestCartItem
from .guest_user import GuestUser
from .order import Order, OrderItem, OrderStatus, PaymentStatus
from .product import Product, product_category
from .user import User

__all__ = [
    "Base",
    "Admin",
    "Cart",
    "CartItem",
    "Category",
    "GuestCart",
    "GuestCartItem",
    "GuestUser",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "product_category",
    "User",
]
