"""Conflict-safe writes against the appointments table.

Every write that claims a time range for a business runs under that
business's lock: a process-local ``threading.Lock`` plus ``SELECT ... FOR
UPDATE`` on the business row, which PostgreSQL honours across processes.
Inside the lock the overlapping rows are re-read before the insert, and the
partial unique index on ``(business_id, start_time)`` rejects whatever still
slips through.
"""

import logging
from datetime import date, datetime, time, timedelta
from threading import Lock

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_backend.core.errors import (
    InvalidDateError,
    InvalidStatusTransitionError,
    NotFoundError,
    SlotConflictError,
    UnauthorizedError,
)
from booking_backend.models.appointment import APPROVED, COMPLETED, PENDING, Appointment
from booking_backend.models.business import Business
from booking_backend.models.customer import Customer
from booking_backend.models.service import Service
from booking_backend.scheduling.availability import validate_duration
from booking_backend.scheduling.lifecycle import BLOCKING_STATUSES, apply_transition

logger = logging.getLogger(__name__)

_locks_guard = Lock()
_business_locks: dict[int, Lock] = {}


def business_lock(business_id: int) -> Lock:
    with _locks_guard:
        lock = _business_locks.get(business_id)
        if lock is None:
            lock = Lock()
            _business_locks[business_id] = lock
        return lock


def _lock_business_row(db: Session, business_id: int) -> None:
    db.query(Business.id).filter(Business.id == business_id).with_for_update().first()


def find_conflicting_appointment(
    db: Session,
    business_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_id: int | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.business_id == business_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.first()


def list_booked_intervals(db: Session, business_id: int, day: date) -> list[tuple[datetime, datetime]]:
    day_start = datetime.combine(day, time(0, 0))
    day_end = day_start + timedelta(days=1)
    rows = db.query(Appointment.start_time, Appointment.end_time).filter(
        Appointment.business_id == business_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.start_time < day_end,
        Appointment.end_time > day_start,
    ).order_by(Appointment.start_time.asc()).all()
    return [(start_time, end_time) for start_time, end_time in rows]


def _load_owned(db: Session, model, record_id: int, business_id: int, label: str):
    record = db.get(model, record_id)
    if record is None:
        raise NotFoundError(f'{label} not found.')
    if record.business_id != business_id:
        raise UnauthorizedError(f'{label} does not belong to this business.')
    return record


def _check_window(start_time: datetime, window: tuple[time, time] | None) -> None:
    if window is None:
        return
    opens_at = datetime.combine(start_time.date(), window[0])
    closes_at = datetime.combine(start_time.date(), window[1])
    if start_time < opens_at or start_time >= closes_at:
        raise InvalidDateError('Appointment is outside working hours.')


def _claim_slot(db: Session, appointment: Appointment, exclude_id: int | None = None) -> Appointment:
    business_id = appointment.business_id
    start_time = appointment.start_time

    with business_lock(business_id):
        try:
            _lock_business_row(db, business_id)
            conflict = find_conflicting_appointment(
                db,
                business_id,
                start_time,
                appointment.end_time,
                exclude_id=exclude_id,
            )
            if conflict is not None:
                conflict_id = conflict.id
                db.rollback()
                logger.info(
                    'Slot conflict for business %s at %s (held by appointment %s)',
                    business_id,
                    start_time,
                    conflict_id,
                )
                raise SlotConflictError('This time is already booked. Please choose another slot.')

            db.add(appointment)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.info('Slot conflict for business %s at %s rejected by the database', business_id, start_time)
            raise SlotConflictError('This time is already booked. Please choose another slot.') from exc

    db.refresh(appointment)
    return appointment


def create_appointment(
    db: Session,
    *,
    business_id: int,
    service_id: int,
    customer_id: int,
    start_time: datetime,
    user_id: int | None = None,
    notes: str | None = None,
    initial_status: str = PENDING,
    window: tuple[time, time] | None = None,
    now: datetime | None = None,
) -> Appointment:
    if initial_status not in (PENDING, APPROVED):
        raise InvalidStatusTransitionError(f'Appointments cannot be created as {initial_status}.')

    service = _load_owned(db, Service, service_id, business_id, 'Service')
    _load_owned(db, Customer, customer_id, business_id, 'Customer')
    duration_minutes = validate_duration(service.duration_minutes)

    start_time = start_time.replace(second=0, microsecond=0)
    end_time = start_time + timedelta(minutes=duration_minutes)
    if now is None:
        now = datetime.now()
    if start_time <= now:
        raise InvalidDateError('Appointments must be scheduled in the future.')
    _check_window(start_time, window)

    appointment = Appointment(
        business_id=business_id,
        service_id=service.id,
        customer_id=customer_id,
        user_id=user_id,
        start_time=start_time,
        end_time=end_time,
        status=initial_status,
        notes=notes,
    )
    appointment = _claim_slot(db, appointment)
    logger.info('Booked appointment %s for business %s at %s (%s)', appointment.id, business_id, start_time, initial_status)
    return appointment


def reschedule_appointment(
    db: Session,
    appointment: Appointment,
    start_time: datetime,
    window: tuple[time, time] | None = None,
    now: datetime | None = None,
) -> Appointment:
    if appointment.status not in (PENDING, APPROVED):
        raise InvalidStatusTransitionError(f'A {appointment.status} appointment cannot be rescheduled.')

    if now is None:
        now = datetime.now()
    start_time = start_time.replace(second=0, microsecond=0)
    end_time = start_time + timedelta(minutes=appointment.duration_minutes)
    if start_time <= now:
        raise InvalidDateError('Appointments must be scheduled in the future.')
    _check_window(start_time, window)

    appointment.start_time = start_time
    appointment.end_time = end_time
    return _claim_slot(db, appointment, exclude_id=appointment.id)


def transition_status(
    db: Session,
    appointment: Appointment,
    target: str,
    *,
    by_admin: bool,
    reason: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    previous = appointment.status
    apply_transition(appointment, target, now=now or datetime.now(), by_admin=by_admin, reason=reason)
    db.commit()
    db.refresh(appointment)
    logger.info('Appointment %s moved from %s to %s', appointment.id, previous, target)
    return appointment


def complete_elapsed_appointments(db: Session, business_id: int, now: datetime | None = None) -> int:
    if now is None:
        now = datetime.now()
    updated = db.query(Appointment).filter(
        Appointment.business_id == business_id,
        Appointment.status == APPROVED,
        Appointment.end_time <= now,
    ).update({Appointment.status: COMPLETED}, synchronize_session=False)
    if updated:
        db.commit()
        logger.info('Marked %s elapsed appointments as completed for business %s', updated, business_id)
    return updated
