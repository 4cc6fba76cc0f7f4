"""Order repository for data access."""

from sqlalchemy.orm import Session

from storefront.models.order import Order, OrderItem
from storefront.schemas.order import OrderCreate


class OrderRepository:
    """Repository for Order model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_session_id(self, payment_session_id: str) -> Order | None:
        return (
            self.db.query(Order)
            .filter(Order.payment_session_id == payment_session_id)
            .first()
        )

    def create(self, data: OrderCreate) -> Order:
        """Create an order with its line items.

        Raises sqlalchemy IntegrityError when an order already exists for
        the payment session.
        """
        order = Order(
            user_id=data.user_id,
            total_amount=data.total_amount,
            payment_session_id=data.payment_session_id,
            coupon_code=data.coupon_code,
        )
        order.items = [
            OrderItem(
                position=position,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
            )
            for position, item in enumerate(data.items)
        ]
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order
