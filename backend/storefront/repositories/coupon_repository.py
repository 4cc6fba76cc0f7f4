"""Coupon repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from storefront.models.coupon import Coupon


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all_by_user(self, user_id: UUID) -> list[Coupon]:
        """Get every coupon row owned by a user, active or not."""
        return (
            self.db.query(Coupon)
            .filter(Coupon.user_id == user_id)
            .order_by(Coupon.created_at.desc())
            .all()
        )

    def get_active_by_user(self, user_id: UUID) -> Coupon | None:
        """Get the active coupon for a user."""
        return (
            self.db.query(Coupon)
            .filter(Coupon.user_id == user_id, Coupon.is_active.is_(True))
            .first()
        )

    def get_active_by_code(self, code: str, user_id: UUID) -> Coupon | None:
        """Get an active coupon by code for a user."""
        return (
            self.db.query(Coupon)
            .filter(
                Coupon.code == code,
                Coupon.user_id == user_id,
                Coupon.is_active.is_(True),
            )
            .first()
        )

    def create(
        self,
        user_id: UUID,
        code: str,
        discount_percentage: int,
        expiration_date: datetime,
    ) -> Coupon:
        """Create a new active coupon."""
        coupon = Coupon(
            user_id=user_id,
            code=code,
            discount_percentage=discount_percentage,
            expiration_date=expiration_date,
            is_active=True,
        )
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def deactivate(self, code: str, user_id: UUID) -> bool:
        """Deactivate the active coupon matching code and user.

        Runs as a single conditional UPDATE. Returns False when nothing
        active matched.
        """
        count = (
            self.db.query(Coupon)
            .filter(
                Coupon.code == code,
                Coupon.user_id == user_id,
                Coupon.is_active.is_(True),
            )
            .update({Coupon.is_active: False}, synchronize_session="fetch")
        )
        self.db.commit()
        return bool(count)

    def replace_for_user(
        self,
        user_id: UUID,
        code: str,
        discount_percentage: int,
        expiration_date: datetime,
    ) -> Coupon:
        """Delete all coupons owned by a user and create a new active one.

        Both writes land in one commit; if the insert fails the old coupons
        are kept.
        """
        self.db.query(Coupon).filter(Coupon.user_id == user_id).delete()
        coupon = Coupon(
            user_id=user_id,
            code=code,
            discount_percentage=discount_percentage,
            expiration_date=expiration_date,
            is_active=True,
        )
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon
