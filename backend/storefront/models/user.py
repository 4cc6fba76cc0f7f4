"""User record owned by the identity service.

Only the fields checkout needs are mapped here; signup, login and cart
editing live elsewhere.
"""

from sqlalchemy import JSON, Column, String

from storefront.core.database import Base
from storefront.models.shared import TimestampMixin, UUIDType, generate_uuid


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # [{"product_id": ..., "quantity": ...}]
    cart_items = Column(JSON, nullable=False, default=list)

