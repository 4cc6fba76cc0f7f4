"""Order schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class OrderItemCreate(BaseModel):
    """One line of the product snapshot carried in session metadata."""

    product_id: str = Field(validation_alias=AliasChoices("id", "product_id"))
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)


class OrderCreate(BaseModel):
    user_id: UUID
    items: list[OrderItemCreate]
    total_amount: Decimal = Field(ge=0)
    payment_session_id: str
    coupon_code: str | None = None
