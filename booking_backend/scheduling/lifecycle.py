"""Appointment status state machine and the customer cancellation rule."""

from datetime import datetime, timedelta

from booking_backend.core import config
from booking_backend.core.errors import InvalidStatusTransitionError, LeadTimeViolationError
from booking_backend.models.appointment import (
    APPOINTMENT_STATUSES,
    APPROVED,
    CANCELLED,
    COMPLETED,
    PENDING,
    Appointment,
)

ALLOWED_TRANSITIONS = {
    PENDING: frozenset({APPROVED, CANCELLED}),
    APPROVED: frozenset({CANCELLED, COMPLETED}),
    CANCELLED: frozenset(),
    COMPLETED: frozenset(),
}
TERMINAL_STATUSES = frozenset({CANCELLED, COMPLETED})
BLOCKING_STATUSES = (PENDING, APPROVED, COMPLETED)


def cancellation_lead_time() -> timedelta:
    return timedelta(hours=config.CANCELLATION_LEAD_TIME_HOURS)


def can_customer_cancel(start_time: datetime, now: datetime) -> bool:
    return start_time - now >= cancellation_lead_time()


def check_cancellation_lead_time(start_time: datetime, now: datetime) -> None:
    if not can_customer_cancel(start_time, now):
        raise LeadTimeViolationError(
            f'Appointments can only be cancelled at least '
            f'{config.CANCELLATION_LEAD_TIME_HOURS} hours before the scheduled time.'
        )


def validate_transition(current: str, target: str) -> None:
    if target not in APPOINTMENT_STATUSES:
        raise InvalidStatusTransitionError(f'Unknown appointment status: {target}.')
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransitionError(f'Cannot change appointment status from {current} to {target}.')


def check_transition(
    appointment: Appointment,
    target: str,
    *,
    now: datetime,
    by_admin: bool,
    reason: str | None = None,
    end_time: datetime | None = None,
) -> None:
    """Raise if ``appointment`` may not move to ``target``; never mutates.

    Admins may approve, reject (a reason is required), cancel and complete.
    Customers may only cancel: a pending request at any time, an approved
    appointment only outside the lead-time window. ``end_time`` overrides the
    stored one when the appointment is about to be moved.
    """
    current = appointment.status
    validate_transition(current, target)

    if not by_admin:
        if target != CANCELLED:
            raise InvalidStatusTransitionError('Customers can only cancel appointments.')
        if current == APPROVED:
            check_cancellation_lead_time(appointment.start_time, now)
    elif current == PENDING and target == CANCELLED and not (reason and reason.strip()):
        raise InvalidStatusTransitionError('A reason is required when rejecting a pending appointment.')

    if target == COMPLETED and (end_time or appointment.end_time) > now:
        raise InvalidStatusTransitionError('Only appointments that have already ended can be completed.')


def apply_transition(
    appointment: Appointment,
    target: str,
    *,
    now: datetime,
    by_admin: bool,
    reason: str | None = None,
) -> Appointment:
    check_transition(appointment, target, now=now, by_admin=by_admin, reason=reason)

    appointment.status = target
    if target == CANCELLED:
        appointment.cancellation_reason = reason.strip() if reason and reason.strip() else None
    return appointment
