"""User repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from storefront.models.user import User


class UserRepository:
    """Read access to users owned by the identity service."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()
