import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_backend.core import config
from booking_backend.models.site_settings import SiteSettings

logger = logging.getLogger(__name__)


def _find_settings(db: Session, business_id: int) -> SiteSettings | None:
    return db.query(SiteSettings).filter(SiteSettings.business_id == business_id).first()


def get_or_create_settings(db: Session, business_id: int) -> SiteSettings:
    settings = _find_settings(db, business_id)
    if settings is not None:
        return settings

    settings = SiteSettings(
        business_id=business_id,
        working_hours={},
        timezone=config.DEFAULT_TIMEZONE,
        language=config.DEFAULT_LANGUAGE,
        theme={},
        auto_approve_bookings=False,
    )
    db.add(settings)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the row first.
        db.rollback()
        existing = _find_settings(db, business_id)
        if existing is None:
            raise
        return existing

    db.refresh(settings)
    logger.info('Created default site settings for business %s', business_id)
    return settings


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _business_zone(settings: SiteSettings | None) -> ZoneInfo | None:
    timezone_name = (settings.timezone if settings else None) or config.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning('Unknown timezone %r; falling back to server local time', timezone_name)
        return None


def business_now(settings: SiteSettings | None) -> datetime:
    """Current wall-clock time in the business's timezone, as a naive datetime.

    Appointment times are stored naive in business-local time.
    """
    zone = _business_zone(settings)
    if zone is None:
        return datetime.now()
    return datetime.now(zone).replace(tzinfo=None)


def to_business_time(value: datetime, settings: SiteSettings | None) -> datetime:
    """Convert a client-supplied time to naive business-local time.

    Naive values are taken to be business-local already.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(_business_zone(settings)).replace(tzinfo=None)
