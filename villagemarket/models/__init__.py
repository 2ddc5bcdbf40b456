"""SQLAlchemy ORM models."""

from villagemarket.models.base import Base
from villagemarket.models.order import Order, OrderItem, OrderStatus
from villagemarket.models.product import Product
from villagemarket.models.shop import Shop
from villagemarket.models.user import User, UserRole

__all__ = [
    "Base",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "Shop",
    "User",
    "UserRole",
]
