"""Error taxonomy for checkout, settlement and coupon operations.

Routers map these onto HTTP responses. Client-correctable failures
(invalid request, coupon not found or expired, foreign session) carry a
message safe to return; the rest are logged and surfaced with a generic
server error.
"""


class StorefrontError(Exception):
    """Base class for all checkout and coupon failures."""


class InvalidRequestError(StorefrontError, ValueError):
    """The request is malformed, e.g. an empty cart."""


class CouponNotFoundError(StorefrontError, LookupError):
    """No active coupon matches the code for this user."""


class CouponExpiredError(StorefrontError):
    """The coupon is past its expiration date and has been deactivated."""


class GatewayError(StorefrontError):
    """The payment provider failed or returned an unexpected shape."""


class CorruptSessionError(StorefrontError):
    """Checkout session metadata cannot be turned back into an order."""


class SessionOwnershipError(StorefrontError):
    """The checkout session belongs to a different user."""


class InternalStoreError(StorefrontError):
    """The persistence layer failed."""
