from storefront.schemas.checkout import (
    CartProduct,
    CheckoutSessionCreate,
    CheckoutSessionResponse,
    CheckoutSuccessRequest,
    CheckoutSuccessResponse,
)
from storefront.schemas.coupon import (
    CouponResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)
from storefront.schemas.order import OrderCreate, OrderItemCreate

__all__ = [
    "CartProduct",
    "CheckoutSessionCreate",
    "CheckoutSessionResponse",
    "CheckoutSuccessRequest",
    "CheckoutSuccessResponse",
    "CouponResponse",
    "CouponValidateRequest",
    "CouponValidateResponse",
    "OrderCreate",
    "OrderItemCreate",
]
