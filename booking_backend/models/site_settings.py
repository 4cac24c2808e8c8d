"""Site settings model definitions."""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String

from booking_backend.core import config
from booking_backend.database import Base


class SiteSettings(Base):
    """Per-business configuration: working hours, timezone, language and theme."""
    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), unique=True, nullable=False)
    working_hours = Column(JSON, default=dict)
    timezone = Column(String, default=config.DEFAULT_TIMEZONE)
    language = Column(String, default=config.DEFAULT_LANGUAGE)
    theme = Column(JSON, default=dict)
    auto_approve_bookings = Column(Boolean, default=False, nullable=False)
