"""Service model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String

from booking_backend.database import Base


class Service(Base):
    """Represents a bookable service with a fixed duration."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.now)
