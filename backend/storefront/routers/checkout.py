"""Checkout and settlement API endpoints."""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user
from storefront.core.database import get_db
from storefront.core.errors import InvalidRequestError, SessionOwnershipError, StorefrontError
from storefront.models.user import User
from storefront.schemas.checkout import (
    CheckoutSessionCreate,
    CheckoutSessionResponse,
    CheckoutSuccessRequest,
    CheckoutSuccessResponse,
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_gateway import PaymentGatewayBase, get_payment_gateway
from storefront.services.settlement_service import SettlementService, SettlementStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/create-session",
    response_model=CheckoutSessionResponse,
    summary="Create checkout session",
    responses={
        400: {"description": "Invalid or empty products array"},
        401: {"description": "Unauthorized"},
        500: {"description": "Error processing checkout"},
    },
)
async def create_checkout_session(
    data: CheckoutSessionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> CheckoutSessionResponse:
    """Price the cart and open a hosted payment session."""
    service = CheckoutService(db, gateway)
    user_id = user.id
    try:
        result = service.create_checkout_session(user, data.products, data.coupon_code)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except StorefrontError:
        logger.exception("Error processing checkout for user %s", user_id)
        raise HTTPException(status_code=500, detail="Error processing checkout") from None

    return CheckoutSessionResponse(
        session_id=result.session_id,
        checkout_url=result.checkout_url,
        total_amount=result.total_amount,
    )


@router.post(
    "/success",
    response_model=CheckoutSuccessResponse,
    summary="Settle a paid checkout session",
    responses={
        401: {"description": "Unauthorized"},
        402: {"description": "Payment not completed"},
        403: {"description": "Checkout session belongs to another user"},
        500: {"description": "Error processing successful checkout"},
    },
)
async def checkout_success(
    data: CheckoutSuccessRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> CheckoutSuccessResponse:
    """Record the order for a checkout session the gateway reports as paid.

    Repeating the call for the same session returns the existing order.
    """
    service = SettlementService(db, gateway)
    try:
        result = service.settle(data.session_id, user)
    except SessionOwnershipError:
        raise HTTPException(status_code=403, detail="Checkout session not accessible") from None
    except StorefrontError:
        logger.exception("Error processing successful checkout %s", data.session_id)
        raise HTTPException(
            status_code=500, detail="Error processing successful checkout"
        ) from None

    if result.status == SettlementStatus.PAYMENT_INCOMPLETE or result.order is None:
        raise HTTPException(status_code=402, detail="Payment not completed")

    message = (
        "Order already recorded for this payment."
        if result.status == SettlementStatus.ALREADY_SETTLED
        else "Payment successful, order created, and coupon deactivated if used."
    )
    return CheckoutSuccessResponse(
        success=True,
        message=message,
        order_id=result.order.id,  # type: ignore[arg-type]
    )


@router.post("/webhook")
async def handle_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> dict[str, Any]:
    """Settle checkout sessions from payment gateway webhooks."""
    payload = await request.body()

    if not stripe_signature or not gateway.verify_webhook_signature(payload, stripe_signature):
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from None

    webhook = gateway.parse_webhook(event)
    if not webhook.session_id:
        return {"status": "ignored", "event_type": webhook.event_type}

    try:
        result = SettlementService(db, gateway).settle(webhook.session_id)
    except StorefrontError:
        logger.exception("Error settling checkout session %s from webhook", webhook.session_id)
        raise HTTPException(status_code=500, detail="Error processing webhook") from None

    return {
        "status": "received",
        "event_type": webhook.event_type,
        "settlement": result.status.value,
    }
