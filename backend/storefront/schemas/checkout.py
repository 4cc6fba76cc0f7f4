"""Checkout and settlement schemas."""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Money leaves the API as a JSON number, e.g. 44.98
JsonMoney = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

CAMEL_CASE_RESPONSE = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))


class CartProduct(BaseModel):
    """A cart line item as submitted by the storefront client."""

    id: str = Field(validation_alias=AliasChoices("id", "_id", "product_id"))
    name: str = Field(max_length=255)
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    image: str | None = None


class CheckoutSessionCreate(BaseModel):
    products: list[CartProduct]
    coupon_code: str | None = Field(
        default=None,
        validation_alias=AliasChoices("coupon_code", "couponCode"),
    )


class CheckoutSessionResponse(BaseModel):
    model_config = CAMEL_CASE_RESPONSE

    session_id: str
    checkout_url: str | None = None
    total_amount: JsonMoney


class CheckoutSuccessRequest(BaseModel):
    session_id: str = Field(
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("session_id", "sessionId"),
    )


class CheckoutSuccessResponse(BaseModel):
    model_config = CAMEL_CASE_RESPONSE

    success: bool
    message: str
    order_id: UUID
