"""Settlement of paid checkout sessions into orders."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.database import store_errors
from storefront.core.errors import CorruptSessionError, InternalStoreError, SessionOwnershipError
from storefront.models.order import Order
from storefront.models.user import User
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.order import OrderCreate, OrderItemCreate
from storefront.services.checkout_service import to_major_units
from storefront.services.coupon_service import CouponService
from storefront.services.payment_gateway import GatewaySession, PaymentGatewayBase

logger = logging.getLogger(__name__)


class SettlementStatus(str, Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    PAYMENT_INCOMPLETE = "payment_incomplete"


@dataclass
class SettlementResult:
    status: SettlementStatus
    order: Order | None = None
    payment_status: str | None = None


@dataclass
class SessionSnapshot:
    """Order details recovered from checkout session metadata."""

    user_id: UUID
    coupon_code: str
    items: list[OrderItemCreate]


def parse_session_metadata(metadata: dict[str, str]) -> SessionSnapshot:
    """Rebuild the cart snapshot written at checkout.

    Raises:
        CorruptSessionError: A field is missing or cannot be decoded.
    """
    try:
        user_id = UUID(metadata["userId"])
        raw_products = json.loads(metadata["products"])
        if not isinstance(raw_products, list) or not raw_products:
            raise ValueError("products must be a non-empty list")
        items = [OrderItemCreate.model_validate(item) for item in raw_products]
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise CorruptSessionError(f"Cannot decode checkout session metadata: {e}") from e

    return SessionSnapshot(
        user_id=user_id,
        coupon_code=metadata.get("couponCode", ""),
        items=items,
    )


class SettlementService:
    """Records an order once the gateway confirms payment.

    The order is written before the coupon is deactivated, so a crash in
    between leaves an unused coupon rather than a lost paid order.
    """

    def __init__(self, db: Session, gateway: PaymentGatewayBase):
        self.db = db
        self.gateway = gateway
        self.order_repo = OrderRepository(db)
        self.coupon_service = CouponService(db)

    def settle(self, session_id: str, user: User | None = None) -> SettlementResult:
        """Settle a checkout session.

        Calling this again for a session that already produced an order
        returns that order without touching the gateway.

        Args:
            session_id: The gateway checkout session id.
            user: The acting principal. When given, the session must belong
                to this user. Webhook deliveries pass None.

        Raises:
            GatewayError: The session could not be retrieved.
            CorruptSessionError: The session metadata cannot be decoded.
            SessionOwnershipError: The session belongs to another user.
            InternalStoreError: The order could not be persisted.
        """
        with store_errors(self.db):
            existing = self.order_repo.get_by_session_id(session_id)
        if existing is not None:
            self._check_owner(existing.user_id, user, session_id)  # type: ignore[arg-type]
            self._deactivate_coupon(existing)
            return SettlementResult(
                status=SettlementStatus.ALREADY_SETTLED,
                order=existing,
                payment_status="paid",
            )

        session = self.gateway.retrieve_session(session_id)
        if not session.is_paid:
            logger.info(
                "Checkout session %s not settled, payment status is %s",
                session_id,
                session.payment_status,
            )
            return SettlementResult(
                status=SettlementStatus.PAYMENT_INCOMPLETE,
                payment_status=session.payment_status,
            )

        snapshot = parse_session_metadata(session.metadata)
        self._check_owner(snapshot.user_id, user, session_id)

        order, created = self._create_order(session, snapshot)
        order_id = order.id
        self._deactivate_coupon(order)
        if not created:
            return SettlementResult(
                status=SettlementStatus.ALREADY_SETTLED,
                order=order,
                payment_status=session.payment_status,
            )

        logger.info(
            "Settled checkout session %s for user %s as order %s",
            session_id,
            snapshot.user_id,
            order_id,
        )
        return SettlementResult(
            status=SettlementStatus.SETTLED,
            order=order,
            payment_status=session.payment_status,
        )

    def _create_order(
        self,
        session: GatewaySession,
        snapshot: SessionSnapshot,
    ) -> tuple[Order, bool]:
        data = OrderCreate(
            user_id=snapshot.user_id,
            items=snapshot.items,
            total_amount=to_major_units(session.amount_total_cents),
            payment_session_id=session.session_id,
            coupon_code=snapshot.coupon_code or None,
        )
        try:
            return self.order_repo.create(data), True
        except IntegrityError as e:
            # Lost a race with another settlement of the same session
            self.db.rollback()
            with store_errors(self.db):
                existing = self.order_repo.get_by_session_id(session.session_id)
            if existing is None:
                raise InternalStoreError(f"Failed to create order: {e}") from e
            logger.info("Order for session %s already recorded", session.session_id)
            return existing, False
        except SQLAlchemyError as e:
            self.db.rollback()
            raise InternalStoreError(f"Failed to create order: {e}") from e

    def _deactivate_coupon(self, order: Order) -> None:
        """Deactivate the coupon redeemed by an order.

        Runs on every settlement attempt, so a retry finishes a deactivation
        that failed earlier. A coupon that is already inactive is left alone.
        """
        if not order.coupon_code:
            return
        order_id, session_id = order.id, order.payment_session_id
        code, user_id = str(order.coupon_code), order.user_id
        try:
            self.coupon_service.deactivate_coupon(code, user_id)  # type: ignore[arg-type]
        except InternalStoreError:
            logger.exception(
                "Order %s recorded for session %s but coupon %s of user %s is still active",
                order_id,
                session_id,
                code,
                user_id,
            )

    @staticmethod
    def _check_owner(owner_id: UUID, user: User | None, session_id: str) -> None:
        if user is not None and owner_id != user.id:
            raise SessionOwnershipError(
                f"Checkout session {session_id} belongs to a different user"
            )
