"""Review model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from booking_backend.database import Base

REVIEW_STATUSES = ("pending", "approved", "rejected")


class Review(Base):
    """Represents a customer's rating of a business."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))
    rating = Column(Integer, nullable=False)
    comment = Column(String)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=datetime.now)
