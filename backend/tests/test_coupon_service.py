"""Tests for CouponService business logic."""

import re
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from storefront.core.errors import CouponExpiredError, CouponNotFoundError, InternalStoreError
from storefront.models.shared import as_utc
from storefront.repositories.coupon_repository import CouponRepository
from storefront.services.coupon_service import CouponService, generate_gift_code


@pytest.fixture
def coupon_service(db_session):
    return CouponService(db_session)


@pytest.fixture
def coupon_repo(db_session):
    return CouponRepository(db_session)


@pytest.fixture
def active_coupon(coupon_repo, user):
    return coupon_repo.create(
        user_id=user.id,
        code="SAVE10",
        discount_percentage=10,
        expiration_date=datetime.now(UTC) + timedelta(days=7),
    )


@pytest.fixture
def expired_coupon(coupon_repo, user):
    return coupon_repo.create(
        user_id=user.id,
        code="OLD20",
        discount_percentage=20,
        expiration_date=datetime.now(UTC) - timedelta(days=1),
    )


class TestGenerateGiftCode:
    def test_default_format(self):
        code = generate_gift_code()
        assert re.fullmatch(r"GIFT[A-Z0-9]{8}", code)

    def test_custom_prefix_and_length(self):
        code = generate_gift_code(prefix="X", length=6)
        assert re.fullmatch(r"X[A-Z0-9]{6}", code)

    def test_codes_differ(self):
        codes = {generate_gift_code() for _ in range(50)}
        assert len(codes) == 50


class TestGetActiveCoupon:
    def test_returns_active_coupon(self, coupon_service, active_coupon, user):
        coupon = coupon_service.get_active_coupon(user.id)
        assert coupon is not None
        assert coupon.id == active_coupon.id

    def test_returns_none_without_coupon(self, coupon_service, user):
        assert coupon_service.get_active_coupon(user.id) is None

    def test_ignores_inactive_coupon(self, coupon_service, coupon_repo, active_coupon, user):
        coupon_repo.deactivate("SAVE10", user.id)
        assert coupon_service.get_active_coupon(user.id) is None

    def test_does_not_leak_other_users_coupon(self, coupon_service, active_coupon, other_user):
        assert coupon_service.get_active_coupon(other_user.id) is None

    def test_store_failure_raises_internal_store_error(self, coupon_service, user):
        with patch.object(
            coupon_service.coupon_repo,
            "get_active_by_user",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            with pytest.raises(InternalStoreError):
                coupon_service.get_active_coupon(user.id)


class TestValidateCoupon:
    def test_valid_coupon(self, coupon_service, active_coupon, user):
        coupon = coupon_service.validate_coupon("SAVE10", user.id)
        assert coupon.code == "SAVE10"
        assert coupon.discount_percentage == 10
        assert coupon.is_active is True

    def test_unknown_code(self, coupon_service, user):
        with pytest.raises(CouponNotFoundError, match="Coupon not found"):
            coupon_service.validate_coupon("NOPE", user.id)

    def test_code_belongs_to_other_user(self, coupon_service, active_coupon, other_user):
        with pytest.raises(CouponNotFoundError):
            coupon_service.validate_coupon("SAVE10", other_user.id)

    def test_inactive_coupon_not_found(self, coupon_service, coupon_repo, active_coupon, user):
        coupon_repo.deactivate("SAVE10", user.id)
        with pytest.raises(CouponNotFoundError):
            coupon_service.validate_coupon("SAVE10", user.id)

    def test_expired_coupon_is_deactivated(self, coupon_service, coupon_repo, expired_coupon, user):
        with pytest.raises(CouponExpiredError, match="Coupon expired"):
            coupon_service.validate_coupon("OLD20", user.id)

        assert coupon_repo.get_active_by_code("OLD20", user.id) is None
        # Subsequent callers no longer see it at all
        with pytest.raises(CouponNotFoundError):
            coupon_service.validate_coupon("OLD20", user.id)

    def test_expiry_boundary_is_exclusive(self, coupon_service, active_coupon, user):
        at_expiry = as_utc(active_coupon.expiration_date)
        with pytest.raises(CouponExpiredError):
            coupon_service.validate_coupon("SAVE10", user.id, now=at_expiry)

    def test_just_before_expiry_is_valid(self, coupon_service, active_coupon, user):
        before = as_utc(active_coupon.expiration_date) - timedelta(seconds=1)
        coupon = coupon_service.validate_coupon("SAVE10", user.id, now=before)
        assert coupon.is_active is True


class TestFindApplicableCoupon:
    def test_returns_valid_coupon(self, coupon_service, active_coupon, user):
        coupon = coupon_service.find_applicable_coupon("SAVE10", user.id)
        assert coupon is not None
        assert coupon.id == active_coupon.id

    def test_unknown_code_returns_none(self, coupon_service, user):
        assert coupon_service.find_applicable_coupon("NOPE", user.id) is None

    def test_expired_code_returns_none_and_deactivates(
        self, coupon_service, coupon_repo, expired_coupon, user
    ):
        assert coupon_service.find_applicable_coupon("OLD20", user.id) is None
        assert coupon_repo.get_active_by_code("OLD20", user.id) is None


class TestDeactivateCoupon:
    def test_deactivates_matching_coupon(self, coupon_service, active_coupon, user):
        assert coupon_service.deactivate_coupon("SAVE10", user.id) is True
        assert coupon_service.get_active_coupon(user.id) is None

    def test_no_match_is_noop(self, coupon_service, user):
        assert coupon_service.deactivate_coupon("NOPE", user.id) is False

    def test_already_inactive_is_noop(self, coupon_service, active_coupon, user):
        coupon_service.deactivate_coupon("SAVE10", user.id)
        assert coupon_service.deactivate_coupon("SAVE10", user.id) is False

    def test_other_user_coupon_untouched(self, coupon_service, active_coupon, user, other_user):
        assert coupon_service.deactivate_coupon("SAVE10", other_user.id) is False
        assert coupon_service.get_active_coupon(user.id) is not None


class TestIssueGiftCoupon:
    def test_creates_gift_coupon(self, coupon_service, user):
        before = datetime.now(UTC)
        coupon = coupon_service.issue_gift_coupon(user.id)

        assert coupon.user_id == user.id
        assert coupon.code.startswith("GIFT")
        assert coupon.discount_percentage == 10
        assert coupon.is_active is True
        expires = as_utc(coupon.expiration_date)
        assert before + timedelta(days=30) - timedelta(minutes=1) <= expires
        assert expires <= datetime.now(UTC) + timedelta(days=30)

    def test_replaces_existing_coupon(self, coupon_service, coupon_repo, active_coupon, user):
        gift = coupon_service.issue_gift_coupon(user.id)

        coupons = coupon_repo.get_all_by_user(user.id)
        assert [c.id for c in coupons] == [gift.id]

    def test_repeated_issuance_leaves_one_active_coupon(self, coupon_service, coupon_repo, user):
        for _ in range(5):
            coupon_service.issue_gift_coupon(user.id)

        coupons = coupon_repo.get_all_by_user(user.id)
        assert len(coupons) == 1
        assert coupons[0].is_active is True

    def test_does_not_touch_other_users(self, coupon_service, coupon_repo, active_coupon, user, other_user):
        coupon_service.issue_gift_coupon(other_user.id)
        assert coupon_repo.get_active_by_code("SAVE10", user.id) is not None

    def test_failed_insert_keeps_existing_coupon(self, coupon_service, coupon_repo, active_coupon, user):
        # NULL code violates NOT NULL when the new row is flushed
        with patch("storefront.services.coupon_service.generate_gift_code", return_value=None):
            with pytest.raises(InternalStoreError):
                coupon_service.issue_gift_coupon(user.id)

        assert [c.code for c in coupon_repo.get_all_by_user(user.id)] == ["SAVE10"]
        assert coupon_repo.get_active_by_code("SAVE10", user.id) is not None
