from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.user_repository import UserRepository

__all__ = [
    "CouponRepository",
    "OrderRepository",
    "UserRepository",
]
