"""Coupon API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user
from storefront.core.database import get_db
from storefront.core.errors import CouponExpiredError, CouponNotFoundError, InternalStoreError
from storefront.models.coupon import Coupon
from storefront.models.user import User
from storefront.schemas.coupon import (
    CouponResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)
from storefront.services.coupon_service import CouponService

router = APIRouter()


@router.get(
    "/",
    response_model=CouponResponse | None,
    summary="Get active coupon",
    responses={
        401: {"description": "Unauthorized"},
        500: {"description": "Server error"},
    },
)
async def get_coupon(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Coupon | None:
    """Return the current user's active coupon, or null."""
    try:
        return CouponService(db).get_active_coupon(user.id)  # type: ignore[arg-type]
    except InternalStoreError:
        raise HTTPException(status_code=500, detail="Server error") from None


@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    summary="Validate coupon",
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Coupon not found or expired"},
        500: {"description": "Server error"},
    },
)
async def validate_coupon(
    data: CouponValidateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CouponValidateResponse:
    """Check that a coupon code is active and unexpired for the current user."""
    service = CouponService(db)
    try:
        coupon = service.validate_coupon(data.code, user.id)  # type: ignore[arg-type]
    except CouponNotFoundError:
        raise HTTPException(status_code=404, detail="Coupon not found") from None
    except CouponExpiredError:
        raise HTTPException(status_code=404, detail="Coupon expired") from None
    except InternalStoreError:
        raise HTTPException(status_code=500, detail="Server error") from None

    return CouponValidateResponse(
        code=str(coupon.code),
        discount_percentage=coupon.discount_percentage,  # type: ignore[arg-type]
    )
