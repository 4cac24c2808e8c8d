"""Bookable slot computation for a single business and day.

Everything here is pure: callers load the booked intervals and settings,
pass them in together with the current time, and get back the list of free
start times. Nothing is read from or written to the database.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from booking_backend.core import config
from booking_backend.core.errors import InvalidDateError, InvalidServiceError

logger = logging.getLogger(__name__)

SLOT_TIME_FORMAT = '%H:%M'
WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

Interval = tuple[datetime, datetime]


def parse_day(day: date | datetime | str) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    if isinstance(day, str):
        try:
            return date.fromisoformat(day.strip())
        except ValueError as exc:
            raise InvalidDateError(f'Invalid date: {day!r}. Expected YYYY-MM-DD.') from exc
    raise InvalidDateError(f'Invalid date: {day!r}.')


def validate_duration(duration_minutes: int | None) -> int:
    if duration_minutes is None or isinstance(duration_minutes, bool) or duration_minutes <= 0:
        raise InvalidServiceError('Service duration must be a positive number of minutes.')
    return int(duration_minutes)


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return start < other_end and end > other_start


def _parse_clock(value: str) -> time:
    return datetime.strptime(value.strip(), SLOT_TIME_FORMAT).time()


def working_hours_for_day(working_hours: dict | None, day: date) -> tuple[time, time] | None:
    """Return the configured opening window for ``day``.

    ``None`` means no usable configuration, so the whole day is open. A day
    that is configured but disabled returns an empty window.
    """
    if not working_hours:
        return None

    entry = working_hours.get(WEEKDAY_NAMES[day.weekday()])
    if entry is None:
        return None

    if not entry.get('enabled', True):
        return time(0, 0), time(0, 0)

    try:
        opens_at = _parse_clock(entry['start'])
        closes_at = _parse_clock(entry['end'])
    except (KeyError, TypeError, ValueError):
        logger.warning('Ignoring malformed working hours for %s: %r', WEEKDAY_NAMES[day.weekday()], entry)
        return None

    if closes_at <= opens_at:
        logger.warning('Ignoring working hours that close before they open: %r', entry)
        return None

    return opens_at, closes_at


def calculate_available_slots(
    duration_minutes: int,
    day: date | datetime | str,
    booked_intervals: Iterable[Interval],
    window: tuple[time, time] | None = None,
    now: datetime | None = None,
    increment_minutes: int = config.SLOT_INCREMENT_MINUTES,
) -> list[str]:
    duration_minutes = validate_duration(duration_minutes)
    slot_day = parse_day(day)

    if window is None:
        window_start = datetime.combine(slot_day, time(0, 0))
        window_end = window_start + timedelta(days=1)
    else:
        window_start = datetime.combine(slot_day, window[0])
        window_end = datetime.combine(slot_day, window[1])

    if now is None:
        now = datetime.now()

    booked = list(booked_intervals)
    step = timedelta(minutes=increment_minutes)
    length = timedelta(minutes=duration_minutes)

    slots: list[str] = []
    candidate = window_start
    while candidate < window_end:
        candidate_end = candidate + length
        if candidate >= now and not any(
            intervals_overlap(candidate, candidate_end, booked_start, booked_end)
            for booked_start, booked_end in booked
        ):
            slots.append(candidate.strftime(SLOT_TIME_FORMAT))
        candidate += step

    return slots
