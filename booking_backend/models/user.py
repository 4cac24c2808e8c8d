"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from booking_backend.database import Base

ADMIN_ROLE = "admin"
CUSTOMER_ROLE = "customer"


class User(Base):
    """Represents an account that can log in, either a business admin or a customer."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String)
    role = Column(String, nullable=False)  # admin/customer
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True)
    created_at = Column(DateTime, default=datetime.now)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
