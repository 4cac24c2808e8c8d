"""Business (tenant) model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from booking_backend.database import Base


class Business(Base):
    """Represents a tenant; every customer, service and appointment belongs to one."""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, index=True)
    registration_code = Column(String, unique=True, index=True, nullable=False)
    description = Column(String)
    phone = Column(String)
    email = Column(String)
    address = Column(String)
    created_at = Column(DateTime, default=datetime.now)
