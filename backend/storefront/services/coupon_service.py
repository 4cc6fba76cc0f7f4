"""Coupon lookup, validation and gift issuance."""

import logging
import secrets
import string
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.database import store_errors
from storefront.core.errors import CouponExpiredError, CouponNotFoundError
from storefront.models.coupon import Coupon
from storefront.models.shared import utc_now
from storefront.repositories.coupon_repository import CouponRepository

logger = logging.getLogger(__name__)

GIFT_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_gift_code(
    prefix: str | None = None,
    length: int | None = None,
) -> str:
    """Generate a random gift coupon code such as ``GIFT7K2Q9XAB``."""
    prefix = settings.GIFT_COUPON_CODE_PREFIX if prefix is None else prefix
    length = length or settings.GIFT_COUPON_CODE_LENGTH
    return prefix + "".join(secrets.choice(GIFT_CODE_ALPHABET) for _ in range(length))


class CouponService:
    """Service for the per-user coupon lifecycle."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)

    def get_active_coupon(self, user_id: UUID) -> Coupon | None:
        """Return the user's active coupon, if any. Does not check expiry."""
        with store_errors(self.db):
            return self.coupon_repo.get_active_by_user(user_id)

    def validate_coupon(
        self,
        code: str,
        user_id: UUID,
        now: datetime | None = None,
    ) -> Coupon:
        """Validate a coupon code for a user.

        An expired coupon is deactivated on the spot; there is no background
        sweep, so this is the only place expiry is enforced. Two concurrent
        validations can both see the coupon as live before either writes.

        Raises:
            CouponNotFoundError: No active coupon with this code for the user.
            CouponExpiredError: The coupon has passed its expiration date.
        """
        with store_errors(self.db):
            coupon = self.coupon_repo.get_active_by_code(code, user_id)
            if coupon is None:
                raise CouponNotFoundError("Coupon not found")

            if coupon.is_expired(now):
                self.coupon_repo.deactivate(code, user_id)
                logger.info("Coupon %s for user %s expired and was deactivated", code, user_id)
                raise CouponExpiredError("Coupon expired")

        return coupon

    def find_applicable_coupon(self, code: str, user_id: UUID) -> Coupon | None:
        """Best-effort variant of validate_coupon used at checkout."""
        try:
            return self.validate_coupon(code, user_id)
        except (CouponNotFoundError, CouponExpiredError) as e:
            logger.info("Ignoring coupon %s for user %s: %s", code, user_id, e)
            return None

    def deactivate_coupon(self, code: str, user_id: UUID) -> bool:
        """Deactivate a user's coupon. No-op if nothing active matches."""
        with store_errors(self.db):
            return self.coupon_repo.deactivate(code, user_id)

    def issue_gift_coupon(self, user_id: UUID) -> Coupon:
        """Replace whatever coupon the user holds with a fresh gift coupon."""
        expiration_date = utc_now() + timedelta(days=settings.GIFT_COUPON_VALIDITY_DAYS)
        with store_errors(self.db):
            coupon = self.coupon_repo.replace_for_user(
                user_id=user_id,
                code=generate_gift_code(),
                discount_percentage=settings.GIFT_COUPON_DISCOUNT_PERCENTAGE,
                expiration_date=expiration_date,
            )
        logger.info("Issued gift coupon %s to user %s", coupon.code, user_id)
        return coupon
