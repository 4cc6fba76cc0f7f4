"""Coupon model for per-user percentage discounts."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from storefront.core.database import Base
from storefront.models.shared import TimestampMixin, UUIDType, as_utc, generate_uuid, utc_now


class Coupon(TimestampMixin, Base):
    """A discount grant owned by a single user.

    A user holds at most one active coupon at a time.
    """

    __tablename__ = "coupons"
    __table_args__ = (UniqueConstraint("code", "user_id", name="uq_coupons_code_user"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String(64), nullable=False, index=True)
    discount_percentage = Column(Integer, nullable=False)
    expiration_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return now >= as_utc(self.expiration_date)  # type: ignore[arg-type]
