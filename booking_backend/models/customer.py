"""Customer model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from booking_backend.database import Base


class Customer(Base):
    """Represents a client of a business. Self-registered customers link to a user."""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    full_name = Column(String, nullable=False)
    email = Column(String)
    phone = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
