import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import get_customer_profile, require_admin, require_business
from booking_backend.core import config
from booking_backend.core.errors import database_unavailable
from booking_backend.database import ensure_appointment_schema, ensure_settings_schema, get_db
from booking_backend.models.appointment import APPOINTMENT_STATUSES, APPROVED, CANCELLED, PENDING, Appointment
from booking_backend.models.customer import Customer
from booking_backend.models.service import Service
from booking_backend.models.user import User
from booking_backend.routes.service_routes import get_business_service
from booking_backend.scheduling import booking
from booking_backend.scheduling.availability import calculate_available_slots, parse_day, working_hours_for_day
from booking_backend.scheduling.lifecycle import can_customer_cancel, check_transition
from booking_backend.services import notifications
from booking_backend.services.site_settings import business_now, get_or_create_settings, to_business_time

router = APIRouter(tags=['appointments'])
logger = logging.getLogger(__name__)


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    service_id: int
    start_time: datetime
    customer_id: int | None = None
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(BaseModel):
    status: str | None = None
    start_time: datetime | None = None
    notes: str | None = None
    reason: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    business_id: int
    service_id: int
    service_name: str
    customer_id: int
    customer_name: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    cancellation_reason: str | None = None
    can_cancel: bool


class AvailabilityResponse(BaseModel):
    date: date
    service_id: int
    duration_minutes: int
    slots: list[str]


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_settings_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def build_appointment_response(db: Session, appointment: Appointment, now: datetime) -> AppointmentResponse:
    service = db.get(Service, appointment.service_id)
    customer = db.get(Customer, appointment.customer_id)
    return AppointmentResponse(
        id=appointment.id,
        business_id=appointment.business_id,
        service_id=appointment.service_id,
        service_name=service.name if service else '',
        customer_id=appointment.customer_id,
        customer_name=customer.full_name if customer else '',
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status,
        notes=appointment.notes,
        cancellation_reason=appointment.cancellation_reason,
        can_cancel=appointment.status == PENDING
        or (appointment.status == APPROVED and can_customer_cancel(appointment.start_time, now)),
    )


def get_visible_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    """Load an appointment the caller may see: same business, and their own unless admin."""
    query = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.business_id == user.business_id,
    )
    if not user.is_admin:
        query = query.filter(Appointment.customer_id == get_customer_profile(db, user).id)

    appointment = query.first()
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')
    return appointment


def queue_status_notification(
    background_tasks: BackgroundTasks,
    db: Session,
    appointment: Appointment,
) -> None:
    customer = db.get(Customer, appointment.customer_id)
    service = db.get(Service, appointment.service_id)
    recipient = customer.email if customer else None
    service_name = service.name if service else 'your service'

    if appointment.status == APPROVED:
        background_tasks.add_task(
            notifications.notify_appointment_approved,
            recipient,
            service_name,
            appointment.start_time,
        )
    elif appointment.status == CANCELLED:
        background_tasks.add_task(
            notifications.notify_appointment_cancelled,
            recipient,
            service_name,
            appointment.start_time,
            appointment.cancellation_reason,
        )


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    day: str | None = Query(default=None),
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        settings = get_or_create_settings(db, current_user.business_id)
        now = business_now(settings)
        booking.complete_elapsed_appointments(db, current_user.business_id, now)

        query = db.query(Appointment).filter(Appointment.business_id == current_user.business_id)
        if not current_user.is_admin:
            query = query.filter(Appointment.customer_id == get_customer_profile(db, current_user).id)

        if status_filter:
            normalized_status = status_filter.strip().lower()
            if normalized_status not in APPOINTMENT_STATUSES:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid appointment status.')
            query = query.filter(Appointment.status == normalized_status)

        if day:
            selected_day = parse_day(day)
            query = query.filter(
                Appointment.start_time >= datetime.combine(selected_day, time(0, 0)),
                Appointment.start_time < datetime.combine(selected_day + timedelta(days=1), time(0, 0)),
            )

        appointments = query.order_by(Appointment.start_time.asc()).all()
        return [build_appointment_response(db, appointment, now) for appointment in appointments]
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to list appointments for business %s', current_user.business_id)
        raise database_unavailable() from exc


@router.get('/availability', response_model=AvailabilityResponse)
def get_availability(
    service_id: int = Query(...),
    day: str = Query(...),
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    selected_day = parse_day(day)

    try:
        service = get_business_service(db, service_id, current_user.business_id)
        settings = get_or_create_settings(db, current_user.business_id)
        slots = calculate_available_slots(
            service.duration_minutes,
            selected_day,
            booking.list_booked_intervals(db, current_user.business_id, selected_day),
            window=working_hours_for_day(settings.working_hours, selected_day),
            now=business_now(settings),
        )
        return AvailabilityResponse(
            date=selected_day,
            service_id=service.id,
            duration_minutes=service.duration_minutes,
            slots=slots,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to compute availability for business %s', current_user.business_id)
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    appointment = get_visible_appointment(db, appointment_id, current_user)
    settings = get_or_create_settings(db, current_user.business_id)
    return build_appointment_response(db, appointment, business_now(settings))


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        settings = get_or_create_settings(db, current_user.business_id)
        now = business_now(settings)

        if current_user.is_admin:
            if data.customer_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='A customer is required.')
            customer_id = data.customer_id
            initial_status = APPROVED
        else:
            customer_id = get_customer_profile(db, current_user).id
            if data.customer_id is not None and data.customer_id != customer_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Customers can only book appointments for themselves.',
                )
            initial_status = APPROVED if settings.auto_approve_bookings else PENDING

        start_time = to_business_time(data.start_time, settings)
        appointment = booking.create_appointment(
            db,
            business_id=current_user.business_id,
            service_id=data.service_id,
            customer_id=customer_id,
            start_time=start_time,
            user_id=current_user.id,
            notes=data.notes,
            initial_status=initial_status,
            window=working_hours_for_day(settings.working_hours, start_time.date()),
            now=now,
        )
        return build_appointment_response(db, appointment, now)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment for business %s', current_user.business_id)
        raise database_unavailable() from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    appointment = get_visible_appointment(db, appointment_id, current_user)

    try:
        settings = get_or_create_settings(db, current_user.business_id)
        now = business_now(settings)
        start_time = to_business_time(data.start_time, settings) if data.start_time is not None else None
        change_status = data.status is not None and data.status != appointment.status

        # Nothing is written unless the whole update can be applied.
        if change_status:
            end_time = None
            if start_time is not None:
                end_time = start_time.replace(second=0, microsecond=0) + timedelta(
                    minutes=appointment.duration_minutes,
                )
            check_transition(appointment, data.status, now=now, by_admin=True, reason=data.reason, end_time=end_time)

        if data.notes is not None:
            appointment.notes = data.notes

        if start_time is not None:
            # Commits the notes together with the new time.
            appointment = booking.reschedule_appointment(
                db,
                appointment,
                start_time,
                window=working_hours_for_day(settings.working_hours, start_time.date()),
                now=now,
            )
        elif data.notes is not None:
            db.commit()
            db.refresh(appointment)

        if change_status:
            appointment = booking.transition_status(
                db,
                appointment,
                data.status,
                by_admin=True,
                reason=data.reason,
                now=now,
            )
            queue_status_notification(background_tasks, db, appointment)

        return build_appointment_response(db, appointment, now)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update appointment %s', appointment_id)
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    data: CancelAppointmentRequest | None = None,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    appointment = get_visible_appointment(db, appointment_id, current_user)

    try:
        settings = get_or_create_settings(db, current_user.business_id)
        now = business_now(settings)
        appointment = booking.transition_status(
            db,
            appointment,
            CANCELLED,
            by_admin=current_user.is_admin,
            reason=data.reason if data else None,
            now=now,
        )
        queue_status_notification(background_tasks, db, appointment)
        return build_appointment_response(db, appointment, now)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to cancel appointment %s', appointment_id)
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    appointment = get_visible_appointment(db, appointment_id, current_user)

    try:
        db.delete(appointment)
        db.commit()
        logger.info('Deleted appointment %s for business %s', appointment_id, current_user.business_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete appointment %s', appointment_id)
        raise database_unavailable() from exc
