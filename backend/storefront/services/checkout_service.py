"""Checkout orchestration: pricing, coupon discount and session creation."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import InvalidRequestError
from storefront.models.coupon import Coupon
from storefront.models.user import User
from storefront.schemas.checkout import CartProduct
from storefront.services.coupon_service import CouponService
from storefront.services.payment_gateway import GatewayLineItem, PaymentGatewayBase

logger = logging.getLogger(__name__)

CENTS_PER_UNIT = 100


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(price: Decimal) -> int:
    """Convert a major-unit price to integer cents."""
    return round_half_up(Decimal(str(price)) * CENTS_PER_UNIT)


def calculate_subtotal_cents(products: Sequence[CartProduct]) -> int:
    """Sum line totals in cents.

    Each unit price is rounded to the cent before it is multiplied by the
    quantity, so the result does not depend on item order.
    """
    return sum(to_cents(product.price) * product.quantity for product in products)


def calculate_discount_cents(total_cents: int, discount_percentage: int) -> int:
    """Discount for a percentage coupon, applied once to the whole total."""
    return round_half_up(Decimal(total_cents) * discount_percentage / 100)


def to_major_units(amount_cents: int) -> Decimal:
    return Decimal(amount_cents) / CENTS_PER_UNIT


@dataclass
class CheckoutResult:
    """Outcome of a checkout session request."""

    session_id: str
    checkout_url: str | None
    total_amount_cents: int
    coupon_code: str | None = None
    gift_coupon_issued: bool = False

    @property
    def total_amount(self) -> Decimal:
        return to_major_units(self.total_amount_cents)


class CheckoutService:
    """Turns a cart into a payment session with the gateway."""

    def __init__(self, db: Session, gateway: PaymentGatewayBase):
        self.db = db
        self.gateway = gateway
        self.coupon_service = CouponService(db)

    def create_checkout_session(
        self,
        user: User,
        products: Sequence[CartProduct],
        coupon_code: str | None = None,
    ) -> CheckoutResult:
        """Price the cart, apply a coupon if possible and open a session.

        An unknown or expired coupon code is ignored rather than rejected.

        Raises:
            InvalidRequestError: The product list is empty or not a list.
            GatewayError: The payment gateway failed.
            InternalStoreError: The coupon lookup failed.
        """
        if not isinstance(products, Sequence) or isinstance(products, str) or not products:
            raise InvalidRequestError("Invalid or empty products array")

        # A store rollback expires ``user``; log and snapshot with the plain id
        user_id: UUID = user.id  # type: ignore[assignment]
        total_cents = calculate_subtotal_cents(products)

        coupon: Coupon | None = None
        if coupon_code:
            coupon = self.coupon_service.find_applicable_coupon(coupon_code, user_id)
        if coupon is not None:
            total_cents -= calculate_discount_cents(
                total_cents,
                coupon.discount_percentage,  # type: ignore[arg-type]
            )

        discount = (
            self.gateway.create_percent_discount(coupon.discount_percentage)  # type: ignore[arg-type]
            if coupon is not None
            else None
        )
        session = self.gateway.create_session(
            line_items=[
                GatewayLineItem(
                    name=product.name,
                    unit_amount_cents=to_cents(product.price),
                    quantity=product.quantity,
                    image=product.image,
                )
                for product in products
            ],
            success_url=(
                f"{settings.CLIENT_URL}/purchase-success?session_id={{CHECKOUT_SESSION_ID}}"
            ),
            cancel_url=f"{settings.CLIENT_URL}/purchase-cancel",
            metadata=self._build_metadata(user_id, products, coupon_code),
            discount=discount,
        )
        logger.info(
            "Created checkout session %s for user %s (total %d cents)",
            session.session_id,
            user_id,
            total_cents,
        )

        result = CheckoutResult(
            session_id=session.session_id,
            checkout_url=session.checkout_url,
            total_amount_cents=total_cents,
            coupon_code=str(coupon.code) if coupon is not None else None,
        )

        # Measured against the discounted total
        if total_cents >= settings.GIFT_COUPON_THRESHOLD_CENTS:
            result.gift_coupon_issued = self._issue_gift_coupon(user_id)

        return result

    def _issue_gift_coupon(self, user_id: UUID) -> bool:
        try:
            self.coupon_service.issue_gift_coupon(user_id)
        except Exception:
            logger.exception("Failed to issue gift coupon for user %s", user_id)
            return False
        return True

    @staticmethod
    def _build_metadata(
        user_id: UUID,
        products: Sequence[CartProduct],
        coupon_code: str | None,
    ) -> dict[str, str]:
        """Snapshot enough of the cart to rebuild the order at settlement."""
        snapshot = [
            {"id": product.id, "quantity": product.quantity, "price": str(product.price)}
            for product in products
        ]
        return {
            "userId": str(user_id),
            "couponCode": coupon_code or "",
            "products": json.dumps(snapshot),
        }
