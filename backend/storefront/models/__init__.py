from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderItem
from storefront.models.user import User

__all__ = [
    "Coupon",
    "Order",
    "OrderItem",
    "User",
]
