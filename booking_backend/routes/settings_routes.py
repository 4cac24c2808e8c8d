import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import require_admin, require_business
from booking_backend.core.errors import database_unavailable
from booking_backend.database import ensure_settings_schema, get_db
from booking_backend.models.user import User
from booking_backend.scheduling.availability import SLOT_TIME_FORMAT, WEEKDAY_NAMES
from booking_backend.services.site_settings import get_or_create_settings, is_valid_timezone

router = APIRouter(tags=['settings'])
logger = logging.getLogger(__name__)


class WorkingDay(BaseModel):
    enabled: bool = True
    start: str = '09:00'
    end: str = '17:00'

    @field_validator('start', 'end')
    @classmethod
    def validate_clock(cls, value: str) -> str:
        try:
            return datetime.strptime(value.strip(), SLOT_TIME_FORMAT).strftime(SLOT_TIME_FORMAT)
        except ValueError as exc:
            raise ValueError('Times must use the HH:MM format.') from exc

    @model_validator(mode='after')
    def validate_order(self):
        if self.enabled and self.end <= self.start:
            raise ValueError('Closing time must be after opening time.')
        return self


class UpdateSettingsRequest(BaseModel):
    working_hours: dict[str, WorkingDay] | None = None
    timezone: str | None = None
    language: str | None = None
    theme: dict | None = None
    auto_approve_bookings: bool | None = None

    @field_validator('working_hours')
    @classmethod
    def validate_weekdays(cls, value: dict[str, WorkingDay] | None) -> dict[str, WorkingDay] | None:
        if value is None:
            return None
        normalized = {day.strip().lower(): hours for day, hours in value.items()}
        unknown = set(normalized) - set(WEEKDAY_NAMES)
        if unknown:
            raise ValueError(f'Unknown weekday(s): {", ".join(sorted(unknown))}.')
        return normalized

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not is_valid_timezone(value.strip()):
            raise ValueError('Unknown timezone.')
        return value.strip()


class SettingsResponse(BaseModel):
    business_id: int
    working_hours: dict
    timezone: str
    language: str
    theme: dict
    auto_approve_bookings: bool

    class Config:
        from_attributes = True


@router.get('', response_model=SettingsResponse)
def read_settings(current_user: User = Depends(require_business), db: Session = Depends(get_db)):
    try:
        ensure_settings_schema()
        return get_or_create_settings(db, current_user.business_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to load settings for business %s', current_user.business_id)
        raise database_unavailable() from exc


@router.put('', response_model=SettingsResponse)
def update_settings(
    data: UpdateSettingsRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not data.model_fields_set:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='No settings to update.')

    try:
        ensure_settings_schema()
        settings = get_or_create_settings(db, current_user.business_id)
        if data.working_hours is not None:
            settings.working_hours = {day: hours.model_dump() for day, hours in data.working_hours.items()}
        if data.timezone is not None:
            settings.timezone = data.timezone
        if data.language is not None:
            settings.language = data.language
        if data.theme is not None:
            settings.theme = data.theme
        if data.auto_approve_bookings is not None:
            settings.auto_approve_bookings = data.auto_approve_bookings
        db.commit()
        db.refresh(settings)
        logger.info('Updated settings for business %s', current_user.business_id)
        return settings
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update settings for business %s', current_user.business_id)
        raise database_unavailable() from exc
