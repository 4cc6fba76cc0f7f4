"""Payment gateway abstraction layer.

The checkout flow only needs three things from a payment processor: open a
hosted checkout session, read back its terminal status, and mint a one-off
percentage discount. Everything crossing this boundary is in minor currency
units (cents).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from storefront.core.config import settings
from storefront.core.errors import GatewayError


PAYMENT_STATUS_PAID = "paid"


@dataclass
class GatewayLineItem:
    """A priced line item sent to the gateway."""

    name: str
    unit_amount_cents: int
    quantity: int
    image: str | None = None


@dataclass
class CheckoutSession:
    """Checkout session result from the gateway."""

    session_id: str
    checkout_url: str | None = None


@dataclass
class GatewaySession:
    """Terminal view of a checkout session, as reported by the gateway."""

    session_id: str
    payment_status: str
    amount_total_cents: int
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_STATUS_PAID


@dataclass
class WebhookResult:
    """Result of parsing a webhook."""

    event_type: str
    session_id: str | None = None
    payment_status: str | None = None


class PaymentGatewayBase(ABC):
    """Abstract base class for payment gateways."""

    @abstractmethod
    def create_session(
        self,
        line_items: list[GatewayLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        discount: str | None = None,
    ) -> CheckoutSession:
        """Create a hosted checkout session."""
        pass  # pragma: no cover

    @abstractmethod
    def retrieve_session(self, session_id: str) -> GatewaySession:
        """Fetch the current status of a checkout session."""
        pass  # pragma: no cover

    @abstractmethod
    def create_percent_discount(self, percent: int) -> str:
        """Create a single-use percentage discount and return its token."""
        pass  # pragma: no cover

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify the webhook signature."""
        pass  # pragma: no cover

    @abstractmethod
    def parse_webhook(self, payload: dict[str, Any]) -> WebhookResult:
        """Parse a webhook payload and return structured result."""
        pass  # pragma: no cover


class StripeGateway(PaymentGatewayBase):
    """Stripe Checkout implementation."""

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
    ):
        self.api_key = api_key or settings.stripe_api_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.currency = (currency or settings.CURRENCY).lower()
        self._stripe: Any = None

    @property
    def stripe(self) -> Any:
        """Lazy-load and configure the stripe module."""
        if self._stripe is None:
            try:
                import stripe
            except ImportError as e:
                raise ImportError("stripe package not installed. Run: pip install stripe") from e

            stripe.api_key = self.api_key
            # Retried requests carry an idempotency key generated by the SDK
            stripe.max_network_retries = settings.stripe_max_network_retries
            stripe.default_http_client = stripe.RequestsClient(
                timeout=settings.stripe_timeout_seconds
            )
            self._stripe = stripe
        return self._stripe

    def create_session(
        self,
        line_items: list[GatewayLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        discount: str | None = None,
    ) -> CheckoutSession:
        """Create a Stripe Checkout Session."""
        session_params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "line_items": [self._line_item_params(item) for item in line_items],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "discounts": [{"coupon": discount}] if discount else [],
            "metadata": metadata,
        }

        try:
            session = self.stripe.checkout.Session.create(**session_params)
        except self.stripe.StripeError as e:
            raise GatewayError(f"Stripe session creation failed: {e}") from e

        if not getattr(session, "id", None):
            raise GatewayError("Stripe returned a session without an id")

        return CheckoutSession(
            session_id=session.id,
            checkout_url=getattr(session, "url", None),
        )

    def retrieve_session(self, session_id: str) -> GatewaySession:
        """Retrieve a Stripe Checkout Session."""
        try:
            session = self.stripe.checkout.Session.retrieve(session_id)
        except self.stripe.StripeError as e:
            raise GatewayError(f"Stripe session lookup failed: {e}") from e

        payment_status = getattr(session, "payment_status", None)
        amount_total = getattr(session, "amount_total", None)
        if not isinstance(payment_status, str) or not isinstance(amount_total, int):
            raise GatewayError(f"Stripe session {session_id} has an unexpected shape")

        raw_metadata = getattr(session, "metadata", None) or {}
        return GatewaySession(
            session_id=session_id,
            payment_status=payment_status,
            amount_total_cents=amount_total,
            metadata={str(k): str(v) for k, v in dict(raw_metadata).items()},
        )

    def create_percent_discount(self, percent: int) -> str:
        """Create a Stripe coupon that applies once."""
        try:
            coupon = self.stripe.Coupon.create(percent_off=percent, duration="once")
        except self.stripe.StripeError as e:
            raise GatewayError(f"Stripe coupon creation failed: {e}") from e
        return str(coupon.id)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify Stripe webhook signature."""
        if not self.webhook_secret:
            return False
        try:
            self.stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
            return True
        except (ValueError, self.stripe.SignatureVerificationError):
            return False

    def parse_webhook(self, payload: dict[str, Any]) -> WebhookResult:
        """Parse Stripe webhook payload."""
        event_type = payload.get("type", "")
        data_object = payload.get("data", {}).get("object", {})

        result = WebhookResult(event_type=event_type)
        if event_type in ("checkout.session.completed", "checkout.session.async_payment_succeeded"):
            result.session_id = data_object.get("id")
            result.payment_status = data_object.get("payment_status")
        return result

    def _line_item_params(self, item: GatewayLineItem) -> dict[str, Any]:
        product_data: dict[str, Any] = {"name": item.name}
        if item.image:
            product_data["images"] = [item.image]
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": product_data,
                "unit_amount": item.unit_amount_cents,
            },
            "quantity": item.quantity,
        }


def get_payment_gateway() -> PaymentGatewayBase:
    """FastAPI dependency returning the configured payment gateway."""
    return StripeGateway()
